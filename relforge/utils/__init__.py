# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Filesystem, hashing, path, and subprocess helpers."""
