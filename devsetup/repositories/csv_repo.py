from __future__ import annotations
import os
import pandas as pd
from filelock import FileLock

class CsvTable:
    """A CSV file read and written whole as a string-typed DataFrame.

    Every access happens under ``<path>.lock``. The lock is reentrant, so callers
    can hold ``table.lock`` around a read-modify-write sequence.
    """

    def __init__(self, path: str, columns: list[str]):
        self.path = path
        self.columns = columns
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        self.lock = FileLock(self.path + ".lock")

    def exists(self) -> bool:
        return os.path.exists(self.path) and os.path.getsize(self.path) > 0

    def create(self) -> None:
        with self.lock:
            pd.DataFrame(columns=self.columns).to_csv(self.path, index=False)

    def read(self) -> pd.DataFrame:
        with self.lock:
            if not self.exists():
                return pd.DataFrame(columns=self.columns)
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False, skip_blank_lines=True)
        # legacy files may lack trailing columns
        for c in self.columns:
            if c not in df.columns:
                df[c] = ""
        return df[self.columns].fillna("")

    def write(self, df: pd.DataFrame) -> None:
        for c in self.columns:
            if c not in df.columns:
                df[c] = ""
        df = df[self.columns]
        tmp = self.path + ".tmp"
        with self.lock:
            df.to_csv(tmp, index=False)
            os.replace(tmp, self.path)

    def append_row(self, row: dict) -> None:
        with self.lock:
            df = self.read()
            new = pd.DataFrame([row], dtype=str)
            df = new if df.empty else pd.concat([df, new], ignore_index=True)
            self.write(df)

    def first_line(self) -> str:
        with self.lock:
            if not self.exists():
                return ""
            with open(self.path, "r", encoding="utf-8") as f:
                return f.readline().rstrip("\r\n")

