import os
import re
from dotenv import load_dotenv

_TRUTHY = ("1", "true", "yes", "on")


def ensure_env_loaded(env_path: str = None):
    env_file = env_path or os.path.join(os.getcwd(), ".env")
    try:
        load_dotenv(env_file)
    except Exception:
        pass

    # Hosting dashboards export lines like 'LLM_API_KEY: "value"'; dotenv skips those.
    def set_from_file(path: str):
        if not os.path.exists(path):
            return
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                m = re.match(r"^([A-Za-z_][A-Za-z0-9_]*)\s*[:=]\s*(?:\"([^\"]*)\"|'([^']*)'|([^#]*))", line)
                if not m:
                    continue
                key = m.group(1)
                val = (m.group(2) or m.group(3) or m.group(4) or "").strip()
                if key not in os.environ:
                    os.environ[key] = val

    try:
        set_from_file(env_file)
    except OSError:
        pass


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in _TRUTHY


def env_int(name: str, default: int, low: int, high: int) -> int:
    try:
        parsed = int(os.getenv(name, default))
    except (TypeError, ValueError):
        parsed = default
    return max(low, min(high, parsed))


def env_float(name: str, default: float, low: float, high: float) -> float:
    try:
        parsed = float(os.getenv(name, default))
    except (TypeError, ValueError):
        parsed = default
    return max(low, min(high, parsed))
