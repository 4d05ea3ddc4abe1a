import azure.functions as func

from wishlist_relay import get_client, get_settings, handle_wishlist_sync


async def main(req: func.HttpRequest) -> func.HttpResponse:
    return await handle_wishlist_sync(req, get_settings(), get_client())
