"""Allow running as ``python -m devops_analytics``."""

from .cli import main

if __name__ == "__main__":
    main()
