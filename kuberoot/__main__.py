"""Entry point for `python -m kuberoot`.

Usage:
    python -m kuberoot
"""

from __future__ import annotations

import asyncio

from kuberoot.app import main

asyncio.run(main())
