"""Module entrypoint for ``python -m tutorhub``."""

from tutorhub.cli import main

if __name__ == "__main__":
    main()
