# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Module entry point so ``python -m skipdrive`` runs the CLI."""

from __future__ import annotations

from skipdrive.cli.app import main

if __name__ == "__main__":
    main()
