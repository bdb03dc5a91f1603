"""Entry point for ``python -m callhome``."""

from callhome.cli import main

if __name__ == "__main__":
    main()
