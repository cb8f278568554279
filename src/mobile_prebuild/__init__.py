"""Prebuild native Node.js addons for nodejs-mobile on Android and iOS.

Classifies the module (node-gyp, neon, node-bindgen), cross-compiles it for one
target and moves the result to prebuilds/<target>/.
"""

from mobile_prebuild.classify import ModuleType, classify_module
from mobile_prebuild.orchestrator import build_prebuild, run
from mobile_prebuild.targets import Target, resolve_target, supported_targets

__version__ = "0.1.0"

__all__ = [
    "ModuleType",
    "Target",
    "build_prebuild",
    "classify_module",
    "resolve_target",
    "run",
    "supported_targets",
]
