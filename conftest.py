"""Root-level conftest.py: make this checkout's packages take precedence.

jenkins_sdk and jenkins_tui may also be installed into the environment (in
editable mode from another worktree, or as a regular install). Prepending
the checkout root makes the tests import the code they sit next to, and
lets test modules import helpers as ``tests.fixtures.*``.
"""

import sys
from pathlib import Path

_root = str(Path(__file__).parent)
if _root not in sys.path:
    sys.path.insert(0, _root)

for _mod in list(sys.modules):
    if _mod.split(".")[0] in ("jenkins_sdk", "jenkins_tui"):
        del sys.modules[_mod]
