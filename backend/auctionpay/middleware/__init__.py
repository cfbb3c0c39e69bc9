from auctionpay.middleware.request_log import RequestLoggingMiddleware  # noqa: F401
