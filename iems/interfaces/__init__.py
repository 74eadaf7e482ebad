from .subscriber import LinkSubscriber

__all__ = ["LinkSubscriber"]
