"""Allow ``python -m full_autorest``."""

from full_autorest.app import main

if __name__ == "__main__":
    main()
