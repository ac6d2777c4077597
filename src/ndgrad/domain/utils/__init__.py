from ._config import Config, no_grad, using_config

__all__ = [
    Config.__name__,
    no_grad.__name__,
    using_config.__name__,
]
