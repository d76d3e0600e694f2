# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Structured logging for relforge."""
