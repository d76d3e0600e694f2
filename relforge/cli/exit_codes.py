# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
CLI exit codes.

These are the only exit codes relforge uses. BUILD_FAILED means the run
completed but at least one required build job (or its staging) failed;
best-effort installer and manifest failures never produce it.
"""

SUCCESS: int = 0
USER_ERROR: int = 1
CONFIG_ERROR: int = 2
RUNTIME_ERROR: int = 3
VALIDATION_ERROR: int = 4
BUILD_FAILED: int = 5
