from auctionpay.api.v1.routes import api_router  # noqa: F401
