import sys
from pathlib import Path

# Make the package importable without installing it.
PACKAGE_ROOT = str(Path(__file__).resolve().parents[1] / "repoinit_package")
if PACKAGE_ROOT not in sys.path:
    sys.path.insert(0, PACKAGE_ROOT)
