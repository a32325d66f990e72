"""Entry point for `python -m transync`.

Usage:
    python -m transync
    uv run python -m transync
"""

from __future__ import annotations

import asyncio

from transync.app import main

asyncio.run(main())
