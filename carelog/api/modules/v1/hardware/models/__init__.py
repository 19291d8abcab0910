from carelog.api.modules.v1.hardware.models.hardware_model import Hardware, HardwareStatus

__all__ = ["Hardware", "HardwareStatus"]
