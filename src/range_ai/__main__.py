"""Module entrypoint for `python -m range_ai`."""

if __package__ is None or __package__ == "":
    import sys
    from pathlib import Path

    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from range_ai.train_ai import train


if __name__ == "__main__":
    train()
