# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the relief intake core.

This package holds the supply allocation engine, identity resolution and
the process-wide domain context. None of it performs I/O.
"""
