from portfolio_api.middleware.request_log import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
