"""Allow running as ``python -m anchor_guidance``."""

from anchor_guidance.cli import main

if __name__ == "__main__":
    main()
