"""Allow ``python -m prismos``."""
from .cli import main

if __name__ == "__main__":
    main()
