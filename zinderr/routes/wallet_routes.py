from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.services.auth_service import current_user
from zinderr.services.wallet_service import get_wallet_summary, list_transactions
from zinderr.schemas.wallet_schema import TransactionSchema
from zinderr.utils.pagination import paginate_query, page_args
from zinderr.utils.response_formatter import success_response, error_response

bp = Blueprint("wallet", __name__, url_prefix="/api/v1/wallet")

transactions_schema = TransactionSchema(many=True)


@bp.route("", methods=["GET"])
@jwt_required()
def wallet():
    user = current_user()
    if user.role != "runner":
        return error_response("FORBIDDEN", "Only runners have a wallet", status=403)
    return success_response({"wallet": get_wallet_summary(user.id)})


@bp.route("/transactions", methods=["GET"])
@jwt_required()
def transactions():
    user = current_user()
    page, limit = page_args(request.args)
    items, pagination = paginate_query(list_transactions(user), page, limit)
    return success_response({"transactions": transactions_schema.dump(items), "pagination": pagination})
