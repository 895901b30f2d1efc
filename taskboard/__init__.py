# -*- coding: utf-8 -*-
"""Notes-and-tasks workspace: board, timers, focus sessions."""

__version__ = "0.1.0"
