from retinaforge.optics.optics import Optics, OpticalImage, create_optics

__all__ = ["Optics", "OpticalImage", "create_optics"]
