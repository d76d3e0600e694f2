# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Target catalog and tag resolution."""
