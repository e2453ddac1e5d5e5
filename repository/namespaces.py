# repository/namespaces.py
from typing import Final

ROOT: Final[str] = "takedowntrail"

SNAPSHOTS: Final[str] = f"{ROOT}:snapshots"  # raw page HTML per capture
EXAMPLES: Final[str] = f"{ROOT}:examples"  # human-verified few-shot examples
