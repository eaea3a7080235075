from lanscan_host.device.network_state import DeviceNetwork, NetworkState

__all__ = ["DeviceNetwork", "NetworkState"]
