from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

@dataclass
class CommandResult:
    cmd: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

class Runner(Protocol):
    def run(self, cmd: Sequence[str], cwd: Optional[str] = None, check: bool = True,
            input: Optional[str] = None, env: Optional[dict] = None) -> CommandResult:
        """Run a command, raising CommandError on non-zero exit when ``check`` is set."""
        ...

    def which(self, name: str) -> Optional[str]:
        ...
