"""Module entrypoint for ``python -m tagnav``.

All argument parsing and session setup happen in ``tagnav.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
