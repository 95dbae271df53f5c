"""Entry point for ``python -m clj_nrepl``."""

from .cli import main

if __name__ == "__main__":
    main()
