# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Archive, raw binary, and installer packaging."""
