"""Error Hierarchy — status codes and the REST error envelope."""

import pytest

from marketplace.core.errors import (
    DatabaseError,
    ErrorContext,
    ForbiddenError,
    MarketplaceError,
    ProductAlreadySoldError,
    ProductHasRequestsError,
    RequestNotPendingError,
    ResourceNotFoundError,
    SelfPurchaseError,
    UnauthenticatedError,
    UsernameTakenError,
    ValidationError,
)


@pytest.mark.parametrize("error, status", [
    (ValidationError("bad", "message"), 400),
    (UnauthenticatedError(), 401),
    (ForbiddenError("approve purchase requests"), 403),
    (ResourceNotFoundError("Product", "p1"), 404),
    (SelfPurchaseError(), 409),
    (ProductAlreadySoldError(), 409),
    (RequestNotPendingError("approved"), 409),
    (ProductHasRequestsError(2), 409),
    (UsernameTakenError("ana"), 409),
    (DatabaseError("boom", "commit"), 503),
])
def test_http_status(error, status):
    assert isinstance(error, MarketplaceError)
    assert error.http_status == status


def test_to_response_envelope():
    error = RequestNotPendingError(
        "rejected", ErrorContext(product_id="p1", request_id="r1", user_id="u1"),
    )
    body = error.to_response()["error"]
    assert body["code"] == "REQUEST_NOT_PENDING"
    assert body["message"] == "Purchase request is already rejected"
    assert body["category"] == "conflict"
    assert body["context"] == {"product_id": "p1", "request_id": "r1"}
    assert "timestamp" in body


def test_response_never_exposes_user_or_debug_info():
    error = ForbiddenError(
        "edit this product", ErrorContext(user_id="u1", debug_info={"sql": "..."}),
    )
    body = error.to_response()["error"]
    assert "user_id" not in body["context"]
    assert "debug_info" not in body
    assert body["message"] == "Only the seller may edit this product"
