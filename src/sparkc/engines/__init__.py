"""Concrete compiler engines."""

from sparkc.engines.dart2js import Dart2jsEngine, parse_compiler_output

__all__ = ["Dart2jsEngine", "parse_compiler_output"]
