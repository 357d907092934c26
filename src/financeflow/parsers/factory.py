import importlib
from typing import Optional, Dict, Type, Any
from financeflow.parsers.base import StatementParser
from financeflow.config.settings import ConfigLoader

class ParserFactory:
    """
    Factory for creating statement parsers.

    Uses a registry pattern to map statement source identifiers
    ('llm-json', 'pdf', 'spreadsheet') to statement parser classes.
    """

    _locked = False
    _registry: Dict[str, Type[StatementParser]] = {}

    @classmethod
    def register(cls, source: str, parser_class: Type[StatementParser]) -> None:
        """
        Register a parser for a statement source

        Args:
            source: Unique identifier for the source (e.g, 'pdf', 'llm-json')
            parser_class: The parser class

        Raises:
            ValueError: If parser is already registered
            TypeError: If parser_class doesn't inherit from StatementParser
            RuntimeError: If the parser registry is locked


        Example:
            ParserFactory.register('pdf', PdfStatementParser)
        """

        if cls._locked:
            raise RuntimeError("Registry is locked, cannot add more parsers")

        if source in cls._registry:
            raise ValueError(f"Parser for '{source}' is already registered")

        if not isinstance(parser_class, type) or not issubclass(parser_class, StatementParser):
            raise TypeError(f"{parser_class} must inherit from StatementParser")

        cls._registry[source] = parser_class

    @classmethod
    def lock_registry(cls):
        """Prevent further registration (call after app initialization)"""
        cls._locked = True

    @classmethod
    def create_parser(cls, source: str, **kwargs: Any) -> StatementParser:
        """
        Create a parser instance for the specified statement source.

        Args:
            source: Statement source identifier (e.g., 'pdf', 'llm-json')
            **kwargs: Passed to the parser constructor (normalizer, password, ...)

        Returns:
            Instantiated parser ready to use

        Raises:
            ValueError: If no parser registered for this source

        Example:
            parser = ParserFactory.create_parser('llm-json')
            statement = parser.parse('gemini_reply.json')
        """
        if source not in cls._registry:
            available = ', '.join(cls._registry.keys())
            raise ValueError(
                f"No parser registered for '{source}'. "
                f"Available parsers: {available}"
            )

        return cls._registry[source](**kwargs)

    @classmethod
    def get_available_sources(cls) -> list[str]:
        """Return list of all registered source identifiers"""
        return list(cls._registry.keys())

    @classmethod
    def load_parsers_from_config(
        cls,
        config: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Load and register parsers from configuration

        Args:
            config: Optional config dict. If None, loads from ConfigLoader.
                Useful for testing with custom configs.

            Example (production):
                ParserFactory.load_parsers_from_config()

            Example (testing):
                test_config = {"parsers": [...]}
                ParserFactory.load_parsers_from_config(config=test_config)
        """
        if cls._locked:
            return

        if config is None:
            config = ConfigLoader.load_parsers_config()

        for parser_config in config['parsers']:
            module_path, class_name = str(parser_config['class']).rsplit('.', 1)
            module = importlib.import_module(module_path)
            parser_class = getattr(module, class_name)

            cls.register(parser_config['source'], parser_class)

        cls.lock_registry()
