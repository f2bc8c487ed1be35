# Copyright (c) 2025 Marc Schütze <scharc@gmail.com>
# SPDX-License-Identifier: MIT
# See LICENSE file in the project root for full license information.

"""agent-connect - Remote terminal sessions for AI coding agents."""

__version__ = "0.4.0"
