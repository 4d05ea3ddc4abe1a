import azure.functions as func

HEALTH_TEXT = "Wishlist Sync Running"


async def main(req: func.HttpRequest) -> func.HttpResponse:
    """Liveness probe. No auth, no upstream calls."""
    return func.HttpResponse(status_code=200, mimetype="text/plain", body=HEALTH_TEXT)
