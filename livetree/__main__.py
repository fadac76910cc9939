"""Module entrypoint for ``python -m livetree``.

All argument parsing and runtime setup happen in ``livetree.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
