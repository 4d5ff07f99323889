"""Repo entrypoint.

Keep this file tiny so `python main.py --service ... --requests ...` works,
while the real implementation lives in the `ratekeeper` package.
"""

from ratekeeper.main import main


if __name__ == "__main__":
    raise SystemExit(main())
