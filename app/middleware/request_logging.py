import time
import logging
from fastapi import Request

logger = logging.getLogger("access")


def _client_addr(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()

    response = await call_next(request)

    elapsed_ms = (time.perf_counter() - start_time) * 1000

    # QR tokens travel in the path; keep them out of the access log
    path = request.url.path
    if path.startswith("/sales-orders/qrcode/") and not path.endswith("/view"):
        path = "/sales-orders/qrcode/<token>" + ("/verify" if path.endswith("/verify") else "")

    logger.info(
        "",
        extra={
            "client_addr": _client_addr(request),
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "process_time_ms": round(elapsed_ms, 2),
        },
    )

    return response
