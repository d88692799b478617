from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required

from zinderr.services import lifecycle
from zinderr.services.auth_service import current_user
from zinderr.services.errand_service import (
    get_errand,
    list_open_errands,
    list_poster_errands,
    list_runner_errands,
    list_errand_bids,
    bid_counts,
)
from zinderr.services.rating_service import rating_status
from zinderr.schemas.errand_schema import ErrandSchema
from zinderr.schemas.bid_schema import BidSchema, PosterBidSchema
from zinderr.schemas.rating_schema import GivenRatingSchema, ReceivedRatingSchema
from zinderr.models.user import User
from zinderr.extensions import db
from zinderr.utils.exceptions import NotFound
from zinderr.utils.pagination import paginate_query, page_args
from zinderr.utils.response_formatter import success_response, error_response

bp = Blueprint("errands", __name__, url_prefix="/api/v1/errands")

errand_schema = ErrandSchema()
errands_schema = ErrandSchema(many=True)
bid_schema = BidSchema()
bids_schema = BidSchema(many=True)
poster_bids_schema = PosterBidSchema(many=True)
given_rating_schema = GivenRatingSchema()
received_rating_schema = ReceivedRatingSchema()


# ------------------------------------------------------------
#  GET /errands — Open errands marketplace
# ------------------------------------------------------------
@bp.route("", methods=["GET"])
@jwt_required()
def list_errands():
    page, limit = page_args(request.args)

    q = list_open_errands(
        category=request.args.get("category"),
        search=request.args.get("search"),
        min_amount=request.args.get("min_amount", type=float),
    )

    items, pagination = paginate_query(q, page, limit)
    counts = bid_counts([e.id for e in items])

    errands = errands_schema.dump(items)
    for data in errands:
        data["bids_count"] = counts.get(data["id"], 0)

    return success_response({"errands": errands, "pagination": pagination})


# ------------------------------------------------------------
#  GET /errands/mine — Poster's own errands or runner's assignments
# ------------------------------------------------------------
@bp.route("/mine", methods=["GET"])
@jwt_required()
def my_errands():
    user = current_user()
    page, limit = page_args(request.args)
    status = request.args.get("status")

    if user.role == "runner":
        q = list_runner_errands(user, status=status)
    else:
        q = list_poster_errands(user, status=status)

    items, pagination = paginate_query(q, page, limit)
    return success_response({"errands": errands_schema.dump(items), "pagination": pagination})


# ------------------------------------------------------------
#  POST /errands — Post a new errand
# ------------------------------------------------------------
@bp.route("", methods=["POST"])
@jwt_required()
def create_errand():
    user = current_user()
    data = request.get_json(silent=True) or {}

    errand = lifecycle.post_errand(user, data)
    return success_response({"errand": errand_schema.dump(errand)}, status=201)


# ------------------------------------------------------------
#  GET /errands/<errand_id> — Errand details
# ------------------------------------------------------------
@bp.route("/<errand_id>", methods=["GET"])
@jwt_required()
def errand_detail(errand_id):
    user = current_user()
    errand = get_errand(errand_id)

    data = errand_schema.dump(errand)
    data["is_poster"] = errand.poster_id == user.id
    data["is_assigned_runner"] = errand.assigned_runner_id == user.id
    return success_response({"errand": data})


# ------------------------------------------------------------
#  PATCH /errands/<errand_id> — Edit an open errand
# ------------------------------------------------------------
@bp.route("/<errand_id>", methods=["PATCH"])
@jwt_required()
def patch_errand(errand_id):
    user = current_user()
    errand = get_errand(errand_id)
    data = request.get_json(silent=True) or {}

    if not data:
        return error_response("VALIDATION_ERROR", "No fields to update", status=422)

    errand = lifecycle.update_errand(errand, user, data)
    return success_response({"errand": errand_schema.dump(errand)})


# ------------------------------------------------------------
#  POST /errands/<errand_id>/cancel
# ------------------------------------------------------------
@bp.route("/<errand_id>/cancel", methods=["POST"])
@jwt_required()
def cancel_errand(errand_id):
    user = current_user()
    errand, changed = lifecycle.cancel_errand(get_errand(errand_id), user)
    return success_response({
        "errand": errand_schema.dump(errand),
        "changed_bids": bids_schema.dump(changed),
    })


# ------------------------------------------------------------
#  POST /errands/<errand_id>/complete
# ------------------------------------------------------------
@bp.route("/<errand_id>/complete", methods=["POST"])
@jwt_required()
def complete_errand(errand_id):
    user = current_user()
    errand = lifecycle.mark_completed(get_errand(errand_id), user)
    return success_response({"errand": errand_schema.dump(errand)}, message="Errand marked as completed")


# ------------------------------------------------------------
#  GET /errands/<errand_id>/bids — Bids on an errand (poster only)
# ------------------------------------------------------------
@bp.route("/<errand_id>/bids", methods=["GET"])
@jwt_required()
def errand_bids(errand_id):
    user = current_user()
    errand = get_errand(errand_id)
    page, limit = page_args(request.args)

    q = list_errand_bids(errand, user)
    status = request.args.get("status")
    if status and status != "all":
        q = q.filter_by(status=status)

    items, pagination = paginate_query(q, page, limit)
    return success_response({"bids": poster_bids_schema.dump(items), "pagination": pagination})


# ------------------------------------------------------------
#  POST /errands/<errand_id>/bids — Place (or update) a bid
# ------------------------------------------------------------
@bp.route("/<errand_id>/bids", methods=["POST"])
@jwt_required()
def create_bid(errand_id):
    user = current_user()
    errand = get_errand(errand_id)
    data = request.get_json(silent=True) or {}

    if data.get("amount") is None:
        return error_response("VALIDATION_ERROR", "Bid amount is required", {"field": "amount"}, status=422)

    bid = lifecycle.place_bid(errand, user, data.get("amount"), data.get("message"))
    return success_response({"bid": bid_schema.dump(bid)}, status=201)


# ------------------------------------------------------------
#  POST /errands/<errand_id>/ratings — Rate the other party
# ------------------------------------------------------------
@bp.route("/<errand_id>/ratings", methods=["POST"])
@jwt_required()
def rate_errand(errand_id):
    user = current_user()
    errand = get_errand(errand_id)
    data = request.get_json(silent=True) or {}

    rated_id = data.get("rated_user_id") or errand.counterpart_of(user.id)
    if not rated_id:
        return error_response("FORBIDDEN", "Only the poster and the assigned runner can rate this errand", status=403)

    rated_user = db.session.get(User, rated_id)
    if not rated_user:
        raise NotFound("User", rated_id)

    rating = lifecycle.submit_rating(
        errand,
        user,
        rated_user,
        data.get("rating"),
        comment=data.get("comment"),
        report_reason=data.get("report_reason"),
    )
    current_app.logger.info("Rating %s submitted on errand %s", rating.id, errand.id)
    return success_response({"rating": given_rating_schema.dump(rating)}, status=201)


# ------------------------------------------------------------
#  GET /errands/<errand_id>/ratings — Caller's rating state for an errand
# ------------------------------------------------------------
@bp.route("/<errand_id>/ratings", methods=["GET"])
@jwt_required()
def errand_rating_status(errand_id):
    user = current_user()
    status = rating_status(get_errand(errand_id), user)
    return success_response({
        "can_rate": status["can_rate"],
        "given": given_rating_schema.dump(status["given"]) if status["given"] else None,
        "received": received_rating_schema.dump(status["received"]) if status["received"] else None,
    })
