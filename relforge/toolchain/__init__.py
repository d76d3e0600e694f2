# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Cross-compilation toolchain provisioning."""
