import sys
from pathlib import Path

# Ensure we can import the package from ./src
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from focusledger.main import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
