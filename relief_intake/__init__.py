# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Relief intake core.

Domain model, supply allocation, identity resolution and relational
persistence for a disaster-relief intake system.
"""

__version__ = "0.1.0"
