from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from zinderr.services.auth_service import current_user
from zinderr.services.rating_service import list_received_ratings, list_given_ratings
from zinderr.schemas.rating_schema import ReceivedRatingSchema, GivenRatingSchema
from zinderr.utils.pagination import paginate_query, page_args
from zinderr.utils.response_formatter import success_response

bp = Blueprint("ratings", __name__, url_prefix="/api/v1/ratings")

received_schema = ReceivedRatingSchema(many=True)
given_schema = GivenRatingSchema(many=True)


@bp.route("/received", methods=["GET"])
@jwt_required()
def received():
    user = current_user()
    page, limit = page_args(request.args)
    items, pagination = paginate_query(list_received_ratings(user), page, limit)
    return success_response({
        "ratings": received_schema.dump(items),
        "average_rating": user.average_rating,
        "total_ratings": user.total_ratings,
        "pagination": pagination,
    })


@bp.route("/given", methods=["GET"])
@jwt_required()
def given():
    user = current_user()
    page, limit = page_args(request.args)
    items, pagination = paginate_query(list_given_ratings(user), page, limit)
    return success_response({"ratings": given_schema.dump(items), "pagination": pagination})
