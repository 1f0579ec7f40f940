"""Band Stage - Configuration constants.

Minimal configuration. No external config libraries.
All paths are relative to the repository root by default.
"""

import os
from pathlib import Path

# Repository root (parent of bandstage/)
REPO_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = REPO_ROOT / "data"


def _get_db_path() -> Path:
    """Get database path from environment or use default.

    Environment variable BANDSTAGE_DB_PATH allows override (tests, alternate
    band profiles). Default is data/bandstage.db under the repository root.

    Returns:
        Path to the SQLite database file.
    """
    env_val = os.environ.get("BANDSTAGE_DB_PATH")
    if env_val:
        return Path(env_val).expanduser()
    return DATA_DIR / "bandstage.db"


# Database path
# Override with BANDSTAGE_DB_PATH environment variable
DB_PATH = _get_db_path()

# Instrument type that feeds the drum-mic category
DRUMS_TYPE = "drums"

# Role tag that sorts a member ahead of the other vocal channels
VOCALIST_ROLE = "vocalist"

# Console ordering for direct-fed instruments. Open vocabulary: any type not
# listed here shares the "other" bucket.
INSTRUMENT_TYPE_PRIORITY = {
    "bass": 1,
    "guitar": 2,
    "keyboard": 3,
    "other": 4,
}
DEFAULT_TYPE_PRIORITY = 4

# Descriptor used in place of a mic model for line-level inputs
DI_PLACEHOLDER_MODEL = "DI box / high-impedance input"

# Channel naming
MIC_TARGET_SEPARATOR = " — "
AMP_DIRECT_PREFIX = "Amp — "
VOCAL_PREFIX = "Voz - "

# Channel list document contract (specs/channel_list.schema.json)
CHANNEL_LIST_SCHEMA_ID = "channel_list.v1"
CHANNEL_LIST_VERSION = "1.0.0"
