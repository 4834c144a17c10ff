from .mod_manager_controller import ModManagerController

__all__ = [
    "ModManagerController",
]
