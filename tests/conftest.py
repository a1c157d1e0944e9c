import sys
from pathlib import Path

# Ensure repository root is on sys.path so 'pubsub_topo_gen' imports without installation
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
