# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Host detection and environment inspection."""
