"""CQRS Graph: message-bus architecture analysis for TypeScript/NestJS code."""

__version__ = "1.0.1"
