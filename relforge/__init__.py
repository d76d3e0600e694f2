# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
relforge: release build and packaging orchestrator.

Turns a declarative list of platform/packaging target tags into versioned,
installable distribution artifacts for a multi-binary Cargo project.
"""

__version__ = "0.4.0"
