from dataclasses import dataclass, field
from pathlib import Path

from platformdirs import user_cache_dir


@dataclass(frozen=True, slots=True)
class CachePathsConfig:
    cache_root: Path = field(default_factory=lambda: Path(user_cache_dir("csvjson")))

    @property
    def scratch_root(self) -> Path:
        return self.cache_root / "scratch"
