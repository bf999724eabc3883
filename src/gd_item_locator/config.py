import os
from pathlib import Path
from typing import Dict, List

REQUIRED_KEYS = ("installation_dir", "save_dir")
DEFAULT_LANGUAGE = "EN"

_DATABASES = (
    ("database", "database.arz"),
    ("gdx1", "database", "GDX1.arz"),
    ("gdx2", "database", "GDX2.arz"),
)
_RESOURCE_DIRS = ((), ("gdx1",), ("gdx2",))


class ConfigError(Exception):
    pass


def config_path() -> Path:
    env = os.environ.get("GDLC_CONFIG")
    if env:
        return Path(env)
    if os.name == "nt":
        base = os.environ.get("APPDATA") or str(Path.home() / "AppData" / "Roaming")
        return Path(base) / "gdlc" / "gdlc.conf"
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "gdlc" / "gdlc.conf"


def parse_config(text: str) -> Dict[str, str]:
    out = {}
    for line in text.splitlines():
        k, sep, v = line.partition("=")
        if not sep:
            continue
        k = k.strip()
        v = v.strip()
        if not k or not v:
            continue
        out[k] = v
    return out


class Config:
    def __init__(self, installation_dir, save_dir, language: str = DEFAULT_LANGUAGE):
        self.installation_dir = Path(installation_dir)
        self.save_dir = Path(save_dir)
        self.language = language or DEFAULT_LANGUAGE

    @classmethod
    def from_dict(cls, d: Dict[str, str]) -> "Config":
        for k in REQUIRED_KEYS:
            if not d.get(k):
                raise ConfigError(f"missing configuration key: {k}")
        return cls(d["installation_dir"], d["save_dir"], d.get("language", DEFAULT_LANGUAGE))

    @classmethod
    def load(cls, path=None) -> "Config":
        p = Path(path) if path else config_path()
        try:
            text = p.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot read configuration file {p}: {e}") from e
        return cls.from_dict(parse_config(text))

    def _existing(self, paths) -> List[str]:
        return [str(p) for p in paths if p.is_file()]

    def database_files(self) -> List[str]:
        return self._existing(self.installation_dir.joinpath(*parts) for parts in _DATABASES)

    def localization_files(self) -> List[str]:
        name = f"Text_{self.language}.arc"
        return self._existing(
            self.installation_dir.joinpath(*d, "resources", name) for d in _RESOURCE_DIRS
        )

    def save_files(self) -> List[str]:
        main = self.save_dir / "main"
        if not main.is_dir():
            return []
        return self._existing(sorted(main.glob("*/player.gdc")))

    def stash_files(self) -> List[str]:
        return self._existing((self.save_dir / "transfer.gst", self.save_dir / "transfer.gsh"))
