from .supervisor import ProcessSupervisor

__all__ = ["ProcessSupervisor"]
