from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.services import lifecycle
from zinderr.services.auth_service import current_user
from zinderr.services.errand_service import get_bid, list_runner_bids
from zinderr.schemas.bid_schema import BidSchema, RunnerBidSchema
from zinderr.schemas.errand_schema import ErrandSchema
from zinderr.utils.pagination import paginate_query, page_args
from zinderr.utils.response_formatter import success_response

bp = Blueprint("bids", __name__, url_prefix="/api/v1/bids")

bid_schema = BidSchema()
bids_schema = BidSchema(many=True)
runner_bids_schema = RunnerBidSchema(many=True)
errand_schema = ErrandSchema()


# ------------------------------------------------------------
#  GET /bids — Runner's own bids
# ------------------------------------------------------------
@bp.route("", methods=["GET"])
@jwt_required()
def list_bids():
    user = current_user()
    page, limit = page_args(request.args)

    q = list_runner_bids(user, status=request.args.get("status"))
    items, pagination = paginate_query(q, page, limit)
    return success_response({"bids": runner_bids_schema.dump(items), "pagination": pagination})


# ------------------------------------------------------------
#  POST /bids/<bid_id>/accept
# ------------------------------------------------------------
@bp.route("/<bid_id>/accept", methods=["POST"])
@jwt_required()
def accept_bid(bid_id):
    user = current_user()
    bid = get_bid(bid_id)

    errand, changed = lifecycle.accept_bid(bid.errand, bid, user)
    return success_response({
        "errand": errand_schema.dump(errand),
        "changed_bids": bids_schema.dump(changed),
    }, message="Bid accepted")


# ------------------------------------------------------------
#  POST /bids/<bid_id>/reject
# ------------------------------------------------------------
@bp.route("/<bid_id>/reject", methods=["POST"])
@jwt_required()
def reject_bid(bid_id):
    user = current_user()
    bid = lifecycle.reject_bid(get_bid(bid_id), user)
    return success_response({"bid": bid_schema.dump(bid)}, message="Bid rejected")


# ------------------------------------------------------------
#  POST /bids/<bid_id>/retract — Runner withdraws a bid
# ------------------------------------------------------------
@bp.route("/<bid_id>/retract", methods=["POST"])
@jwt_required()
def retract_bid(bid_id):
    user = current_user()
    data = request.get_json(silent=True) or {}

    bid, errand = lifecycle.retract_bid(get_bid(bid_id), user, reason=data.get("reason"))
    return success_response({
        "bid": bid_schema.dump(bid),
        "errand": errand_schema.dump(errand) if errand is not None else None,
    }, message="Bid retracted")
