from decimal import Decimal
import uuid

from sqlalchemy import func

from zinderr.extensions import db
from zinderr.models.wallet import Wallet
from zinderr.models.transaction import Transaction


def gen_wallet_id():
    return f"wal_{uuid.uuid4().hex[:12]}"


def get_or_create_wallet(runner_id):
    wallet = Wallet.query.filter_by(runner_id=runner_id).first()
    if not wallet:
        wallet = Wallet(
            id=gen_wallet_id(),
            runner_id=runner_id,
            total_earned=Decimal("0.00"),
            available_balance=Decimal("0.00"),
            total_withdrawn=Decimal("0.00"),
        )
        db.session.add(wallet)
        db.session.flush()
    return wallet


def credit_runner(runner_id, amount):
    """Add an errand payout to the runner's wallet. Caller commits."""
    wallet = (
        Wallet.query
        .filter_by(runner_id=runner_id)
        .with_for_update()
        .first()
    ) or get_or_create_wallet(runner_id)

    amount = Decimal(amount)

    wallet.total_earned = (wallet.total_earned or Decimal("0")) + amount
    wallet.available_balance = (wallet.available_balance or Decimal("0")) + amount
    return wallet


def get_wallet_summary(runner_id):
    wallet = Wallet.query.filter_by(runner_id=runner_id).first()

    completed = (
        db.session.query(func.count(Transaction.id))
        .filter(Transaction.runner_id == runner_id, Transaction.status == "completed")
        .scalar()
    ) or 0

    if not wallet:
        return {
            "total_earned": 0.0,
            "available_balance": 0.0,
            "total_withdrawn": 0.0,
            "currency": "GHS",
            "completed_errands": completed,
        }

    return {
        "total_earned": float(wallet.total_earned or 0),
        "available_balance": float(wallet.available_balance or 0),
        "total_withdrawn": float(wallet.total_withdrawn or 0),
        "currency": wallet.currency,
        "completed_errands": completed,
    }


def list_transactions(user):
    q = Transaction.query
    if user.role == "poster":
        q = q.filter(Transaction.poster_id == user.id)
    else:
        q = q.filter(Transaction.runner_id == user.id)
    return q.order_by(Transaction.completed_at.desc())
