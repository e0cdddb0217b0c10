"""Pytest configuration and fixtures for CQRS Graph tests."""

from pathlib import Path
from typing import Callable

import pytest

from cqrsgraph_cli.extractor import extract_unit
from cqrsgraph_cli.models import AnalysisResult, BusUsage, HandlerDeclaration, Position
from cqrsgraph_cli.parser import TypeScriptParser


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path: Path):
    """Point config discovery at an empty temp location.

    Without this a ``.cqrsgraph.toml`` in the working directory would leak
    into CLI and pipeline tests.
    """
    monkeypatch.setenv("CQRSGRAPH_CONFIG", str(tmp_path / "absent.toml"))


@pytest.fixture(scope="session")
def ts_parser() -> TypeScriptParser:
    return TypeScriptParser(languages=["typescript", "tsx"])


@pytest.fixture
def extract(ts_parser: TypeScriptParser) -> Callable[[str], AnalysisResult]:
    """Parse a TypeScript snippet and run extraction on it."""

    def _extract(code: str, path: str = "sample.ts") -> AnalysisResult:
        return extract_unit(path, ts_parser.parse(code), code)

    return _extract


@pytest.fixture
def sample_project_path() -> Path:
    """Path to the sample NestJS project."""
    return Path(__file__).parent / "fixtures" / "sample_project"


@pytest.fixture
def make_usage() -> Callable[..., BusUsage]:
    def _make(class_name: str, event_type: str, bus_type: str = "CommandBus",
              method_name: str = "run", source_file: str = "a.ts") -> BusUsage:
        return BusUsage(
            source_file=source_file,
            class_name=class_name,
            method_name=method_name,
            bus_type=bus_type,
            event_type=event_type,
            position=Position(1, 1),
        )

    return _make


@pytest.fixture
def make_handler() -> Callable[..., HandlerDeclaration]:
    def _make(class_name: str, event_type: str, handler_type: str = "CommandHandler",
              source_file: str = "b.ts") -> HandlerDeclaration:
        return HandlerDeclaration(
            source_file=source_file,
            class_name=class_name,
            handler_type=handler_type,
            event_type=event_type,
            position=Position(1, 1),
        )

    return _make


@pytest.fixture
def order_service_code() -> str:
    return '''import { CommandBus } from '@nestjs/cqrs';

export class OrderService {
  constructor(private readonly commandBus: CommandBus) {}

  async placeOrder() {
    await this.commandBus.execute(new CreateOrderCommand());
  }
}
'''


@pytest.fixture
def order_handler_code() -> str:
    return '''import { CommandHandler, ICommandHandler } from '@nestjs/cqrs';

@CommandHandler(CreateOrderCommand)
export class OrderHandler implements ICommandHandler<CreateOrderCommand> {
  async execute(command: CreateOrderCommand) {
    return command;
  }
}
'''
