# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Release orchestration for relforge.

Wires the phases together in a fixed order:

    resolve → provision → build → package → materialize

Every phase reads and appends to one StagingContext that owns the output
directory. Nothing here runs concurrently except the heartbeat that watches
external tools.
"""
