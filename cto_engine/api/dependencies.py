from ..services.asset_client import AssetServiceClient, HttpAssetServiceClient


def get_asset_client() -> AssetServiceClient:
    return HttpAssetServiceClient()
