import os
import sys
from pathlib import Path

# Ensure project root is on sys.path for `import game_analyzer.*`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Default: deterministic insight provider unless a test opts in
os.environ.setdefault("AI_PROVIDER", "mock")
