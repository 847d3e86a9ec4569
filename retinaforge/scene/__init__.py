from retinaforge.scene.scene import Scene, scene_from_rgb

__all__ = ["Scene", "scene_from_rgb"]
