# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
plugman - plugin package manager for extensible applications.

Discovers plugin packages from remote channels, resolves a compatible
version set and installs it into local plugin storage.
"""

__version__ = "1.0.0"
