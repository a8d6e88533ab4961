from datetime import datetime

def stamp(now: datetime | None = None) -> str:
    # compact form for ".backup.<stamp>" suffixes
    return (now or datetime.now()).strftime("%Y%m%d%H%M%S")

def backup_stamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")

def human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "K", "M"):
        if size < 1024:
            return f"{int(size)}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}G"
