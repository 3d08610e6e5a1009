#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Application entrypoint for icsjournal.

This file is intentionally minimal. It only boots the command-line app.
"""
from __future__ import annotations

from icsjournal.cli import main


if __name__ == "__main__":
    main()
