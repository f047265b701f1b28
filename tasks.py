# tasks.py
"""
Developer task runner using Invoke.
Run `inv --list` to see tasks.

Key tasks:
  inv initdb [--db <path>]
  inv ingest --merchant "Din Tai Fung" --amount 45.80 --card "DBS Live Fresh Visa"
  inv demo
  inv test
  inv clean
"""

from invoke import task
from pathlib import Path
import sys


REPO = Path(__file__).parent
DEFAULT_DB = REPO / "data" / "cardwise.sqlite"

DEMO_PAYMENTS = [
    ("NTUC FairPrice", "82.40", "Citi Cash Back"),
    ("Din Tai Fung", "45.80", "DBS Live Fresh Visa"),
    ("Shopee", "129.00", "DBS Live Fresh Visa"),
    ("Grab", "18.20", "UOB One Visa"),
    ("Starbucks", "7.50", "UOB One Visa"),
]


def _python():
    """Return the python executable inside the current venv."""
    return sys.executable or "python"


def _cli(c, args):
    c.run(f'"{_python()}" "{REPO / "cardproc.py"}" ' + args, pty=False)


@task(help={"db": "SQLite path (default: data/cardwise.sqlite)"})
def initdb(c, db=str(DEFAULT_DB)):
    """Create the portfolio database."""
    _cli(c, f'db --init --db "{db}"')


@task(
    help={
        "merchant": "Merchant name as shown on the payment",
        "amount": "Payment amount",
        "card": "Card label as reported by the payment platform",
        "db": "SQLite path (default: data/cardwise.sqlite)",
    }
)
def ingest(c, merchant, amount, card, db=str(DEFAULT_DB)):
    """Log one payment."""
    _cli(c, f'ingest "{merchant}" {amount} "{card}" --db "{db}"')


@task(help={"db": "SQLite path (default: data/cardwise.sqlite)"})
def demo(c, db=str(DEFAULT_DB)):
    """Replay a handful of payments, then show recommendations and the summary."""
    for merchant, amount, card in DEMO_PAYMENTS:
        _cli(c, f'--quiet ingest "{merchant}" {amount} "{card}" --db "{db}"')
    _cli(c, f'--quiet recommend --db "{db}"')
    _cli(c, f'--quiet summary --period week --db "{db}"')


@task
def test(c):
    """Run unit tests with pytest."""
    c.run(f'"{_python()}" -m pytest -q', pty=False)


@task(help={"db": "SQLite path (default: data/cardwise.sqlite)"})
def clean(c, db=str(DEFAULT_DB)):
    """Delete the portfolio database."""
    p = Path(db)
    if p.exists():
        p.unlink()
        print(f"Removed {p}")
