from lanscan_host.discovery.mdns import MdnsAdvertiser

__all__ = ["MdnsAdvertiser"]
