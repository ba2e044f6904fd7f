"""Allow `python -m reffy`."""

from reffy.cli.app import run


if __name__ == "__main__":
    run()
