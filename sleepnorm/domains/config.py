from dataclasses import dataclass

@dataclass
class LoaderCfg:
    default_name: str = "Individual"
    chunksize: int = 500
    encoding: str = "utf-8-sig"

@dataclass
class WindowCfg:
    months: int = 6
