"""Entry point for running the reminder engine as a module.

Allows running with: python -m src.scheduling
"""

from src.scheduling.runner import main

if __name__ == "__main__":
    main()
