"""Allow `python -m memtop`."""

from memtop.cli import main

if __name__ == "__main__":
    main()
