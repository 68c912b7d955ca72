"""Provide insights about Python objects."""

import functools
import inspect
from typing import Any


def get_qualname(obj: Any) -> str:
    """Get the qualified name of the given object.

    Will return the name of the object and the
    name of the module and class it belongs to.

    For functions or methods, this will return
    something like `module.class.method` or
    `module.function`. Partially applied functions
    are named after the function they wrap.

    Used to give a readable representation to
    expressions invoking compute functions.

    >>> class TestClass:
    ...   def method(self, arg):
    ...     pass
    >>> get_qualname(TestClass.method)
    'datawrangle.utils.inspect.TestClass.method'
    >>> get_qualname(functools.partial(TestClass.method, None))
    'datawrangle.utils.inspect.TestClass.method'
    """
    if isinstance(obj, functools.partial):
        return get_qualname(obj.func)

    module = inspect.getmodule(obj)
    module_name = module.__name__ if module is not None else "builtins"
    if inspect.ismethod(obj) or inspect.isfunction(obj):
        if hasattr(obj, "__self__") and obj.__self__:
            class_name = obj.__self__.__class__.__name__
            return f"{module_name}.{class_name}.{obj.__name__}"
        return f"{module_name}.{obj.__qualname__}"
    elif inspect.isclass(obj):
        return f"{module_name}.{obj.__name__}"
    elif inspect.ismodule(obj):
        return obj.__name__
    elif isinstance(obj, object):
        return f"{module_name}.{obj.__class__.__name__}"
    raise ValueError(f"Unable to detect path for object of type {type(obj)}")
