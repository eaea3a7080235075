from lanscan_host.api.app import build_app

__all__ = ["build_app"]
