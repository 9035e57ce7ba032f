"""
Authorization plugin registry.

Allows registering condition translators, URN path handlers and filter
backends without modifying core code. Implementations register
themselves using decorators.

Usage:
    @AuthRegistry.condition("IpAddress")
    class IpAddressCondition(ConditionTranslator):
        ...

    @AuthRegistry.path_handler("priority_range")
    def priority_range(match, fragment):
        ...

    # Later, get by name:
    translator = AuthRegistry.get_condition_translator("IpAddress")
"""

from typing import Any, Callable, Type

from .interfaces import ConditionTranslator, FilterBackend

PathHandlerFunc = Callable[..., Any]


class AuthRegistry:
    """
    Central registry for authorization components.

    Components register themselves using decorators.
    This enables extensibility without modifying factory code.
    """

    _condition_translators: dict[str, Type[ConditionTranslator]] = {}
    _path_handlers: dict[str, PathHandlerFunc] = {}
    _filter_backends: dict[str, Type[FilterBackend]] = {}

    # ============================================================
    # REGISTRATION DECORATORS
    # ============================================================

    @classmethod
    def condition(cls, operator: str) -> Callable[[Type[ConditionTranslator]], Type[ConditionTranslator]]:
        """
        Decorator to register a condition translator.

        Usage:
            @AuthRegistry.condition("StringEquals")
            class StringEqualsCondition(ConditionTranslator):
                ...
        """
        def decorator(translator_class: Type[ConditionTranslator]) -> Type[ConditionTranslator]:
            cls._condition_translators[operator] = translator_class
            return translator_class
        return decorator

    @classmethod
    def path_handler(cls, name: str) -> Callable[[PathHandlerFunc], PathHandlerFunc]:
        """
        Decorator to register a named URN path handler.

        Named handlers can be referenced from JSON mapping files.

        Usage:
            @AuthRegistry.path_handler("tag")
            def tag_handler(match, fragment):
                fragment.add_to_set("tags", match.group(1))
        """
        def decorator(func: PathHandlerFunc) -> PathHandlerFunc:
            cls._path_handlers[name] = func
            return func
        return decorator

    @classmethod
    def filter_backend(cls, name: str) -> Callable[[Type[FilterBackend]], Type[FilterBackend]]:
        """
        Decorator to register a filter backend.

        Usage:
            @AuthRegistry.filter_backend("document")
            class DocumentFilterBackend(FilterBackend):
                ...
        """
        def decorator(backend_class: Type[FilterBackend]) -> Type[FilterBackend]:
            cls._filter_backends[name] = backend_class
            return backend_class
        return decorator

    # ============================================================
    # GETTERS
    # ============================================================

    @classmethod
    def get_condition_translator(cls, operator: str, **kwargs: Any) -> ConditionTranslator:
        """
        Get a condition translator by operator.

        Raises:
            ValueError: If operator not found
        """
        translator_class = cls._condition_translators.get(operator)
        if not translator_class:
            available = list(cls._condition_translators.keys())
            raise ValueError(
                f"Unknown condition operator: '{operator}'. "
                f"Available: {available}"
            )
        return translator_class(**kwargs)

    @classmethod
    def get_path_handler(cls, name: str) -> PathHandlerFunc:
        """
        Get a path handler function by name.

        Raises:
            ValueError: If handler not found
        """
        handler = cls._path_handlers.get(name)
        if not handler:
            available = list(cls._path_handlers.keys())
            raise ValueError(
                f"Unknown path handler: '{name}'. "
                f"Available: {available}"
            )
        return handler

    @classmethod
    def get_filter_backend(cls, name: str, **kwargs: Any) -> FilterBackend:
        """
        Get a filter backend by name.

        Args:
            name: Registered name of the backend
            **kwargs: Arguments to pass to backend constructor

        Raises:
            ValueError: If backend not found
        """
        backend_class = cls._filter_backends.get(name)
        if not backend_class:
            available = list(cls._filter_backends.keys())
            raise ValueError(
                f"Unknown filter backend: '{name}'. "
                f"Available: {available}"
            )
        return backend_class(**kwargs)

    # ============================================================
    # INTROSPECTION
    # ============================================================

    @classmethod
    def list_conditions(cls) -> list[str]:
        """List all registered condition operators."""
        return list(cls._condition_translators.keys())

    @classmethod
    def list_path_handlers(cls) -> list[str]:
        """List all registered path handler names."""
        return list(cls._path_handlers.keys())

    @classmethod
    def list_filter_backends(cls) -> list[str]:
        """List all registered filter backend names."""
        return list(cls._filter_backends.keys())

    @classmethod
    def has_condition(cls, operator: str) -> bool:
        """Check if a condition operator is registered."""
        return operator in cls._condition_translators
