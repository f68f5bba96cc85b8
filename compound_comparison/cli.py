"""Console-script entrypoints.

These wrappers delegate to the tool modules so `python -m compound_comparison.tools.similarity_cli` and the installed
`compound-search` script run the same `main()`.
"""

from __future__ import annotations


def search() -> None:
    from compound_comparison.tools.similarity_cli import main

    raise SystemExit(main())
