# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""Compiler invocation and artifact capture."""
