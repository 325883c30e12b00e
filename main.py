#!/usr/bin/env python3
"""
FAQ Plus QnA Service - Knowledge base management CLI
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

# Setup logger
logger = logging.getLogger(__name__)

from faqplus.qna.client import QnAMakerClient, QnAMakerRuntimeClient
from faqplus.qna.models import (
    METADATA_CREATED_BY,
    METADATA_UPDATED_BY,
    Environment,
    QnaEntry,
    QnaSearchResultList,
)
from faqplus.qna.service_provider import QnaServiceProvider
from faqplus.qna.settings import QnAMakerSettings
from faqplus.storage.configuration_provider import FileConfigurationDataProvider
from faqplus.storage.models import CONFIGURATION_INFO_PARTITION_KEY, ConfigurationEntityTypes


def load_env_file():
    """Load environment variables from .env file if it exists."""
    env_file = Path(".env")
    if env_file.exists():
        with open(env_file, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ[key] = value


def load_config(config_path: str = "config/config.yaml") -> dict:
    """Load configuration from YAML file."""
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
        return config or {}
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {config_path}")
        sys.exit(1)
    except yaml.YAMLError as e:
        print(f"❌ Error parsing configuration file: {e}")
        sys.exit(1)


def setup_logging(config: dict):
    """Setup logging configuration."""
    log_config = config.get("logging", {})
    log_level = getattr(logging, log_config.get("level", "INFO"))
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # Create logs directory if it doesn't exist
    log_file = log_config.get("file", "logs/faqplus.log")
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ]
    )


class FAQPlusQnaSystem:
    """Wires the configuration store and QnA Maker clients together."""

    def __init__(self, config: dict):
        self.config = config
        self.console = Console()

        self.settings = QnAMakerSettings.from_config(config)
        storage_path = config.get("storage", {}).get("path", "data/configuration")
        self.configuration_provider = FileConfigurationDataProvider(Path(storage_path))

        self.qna_maker_client = QnAMakerClient(self.settings)
        # Runtime endpoint is only needed for answering questions
        try:
            runtime_client = QnAMakerRuntimeClient(self.settings)
        except ValueError as e:
            logger.warning(f"QnA Maker runtime client not available: {e}")
            runtime_client = None

        self.provider = QnaServiceProvider(
            self.configuration_provider,
            self.settings,
            self.qna_maker_client,
            runtime_client,
        )

    async def active_knowledge_base_id(self) -> str:
        """Get the configured knowledge base id or fail with a readable message."""
        entity = await self.provider.get_knowledge_base(ConfigurationEntityTypes.KNOWLEDGE_BASE_ID)
        if entity is None or not entity.data:
            raise click.ClickException("No knowledge base configured, run 'set-kb' first")
        return entity.data

    def display_answers(self, question: str, results: QnaSearchResultList):
        """Display ranked answers."""
        if not len(results):
            self.console.print(f"[yellow]No confident answer for: {question}[/yellow]")
            return

        table = Table(title=f"Answers for: {question}")
        table.add_column("Score", style="cyan")
        table.add_column("Id", style="white")
        table.add_column("Question", style="white")
        table.add_column("Answer", style="green")

        for result in results:
            table.add_row(
                f"{result.score:.2f}",
                str(result.id) if result.id is not None else "-",
                "; ".join(result.questions),
                result.answer,
            )

        self.console.print(table)

    def display_entries(self, entries: List[QnaEntry]):
        """Display downloaded QnA documents."""
        table = Table(title=f"Knowledge Base Entries ({len(entries)})")
        table.add_column("Id", style="cyan")
        table.add_column("Questions", style="white")
        table.add_column("Answer", style="green")
        table.add_column("Source", style="white")
        table.add_column("Author", style="white")

        for entry in entries:
            table.add_row(
                str(entry.id) if entry.id is not None else "-",
                "\n".join(entry.questions),
                entry.answer,
                entry.source or "",
                entry.metadata_value(METADATA_UPDATED_BY) or entry.metadata_value(METADATA_CREATED_BY) or "",
            )

        self.console.print(table)


def run_command(coro):
    """Run a coroutine and report failures at the command boundary."""
    try:
        return asyncio.run(coro)
    except click.ClickException:
        raise
    except Exception as e:
        logger.error(f"Command failed: {e}")
        Console().print(f"[red]❌ {e}[/red]")
        sys.exit(1)


@click.group()
@click.option('--config', '-c', default='config/config.yaml', help='Configuration file path')
@click.option('--debug', '-d', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, config, debug):
    """FAQ Plus QnA knowledge base CLI."""
    # Load environment variables first
    load_env_file()

    ctx.ensure_object(dict)
    ctx.obj['config'] = load_config(config)

    # Enable debug logging from the flag or the config file
    if debug or ctx.obj['config'].get('debug', {}).get('enabled', False):
        ctx.obj['config'].setdefault('logging', {})['level'] = 'DEBUG'

    # Setup logging
    setup_logging(ctx.obj['config'])


@cli.command()
@click.argument('question')
@click.argument('answer')
@click.option('--created-by', '-u', required=True, help='User adding the entry')
@click.option('--conversation-id', default=None, help='Originating conversation id')
@click.option('--activity-reference-id', default='', help='Originating activity reference id')
@click.pass_context
def add(ctx, question, answer, created_by, conversation_id, activity_reference_id):
    """Add a question and answer to the knowledge base."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_add():
        operation = await system.provider.add_qna(
            question, answer, created_by, conversation_id, activity_reference_id
        )
        system.console.print(
            f"[green]✅ Add submitted: operation {operation.operation_id} ({operation.operation_state})[/green]"
        )

    run_command(run_add())


@cli.command()
@click.argument('question_id', type=int)
@click.argument('answer')
@click.option('--updated-by', '-u', required=True, help='User editing the entry')
@click.option('--new-question', default='', help='Replacement question text')
@click.option('--question', default='', help='Current question text')
@click.pass_context
def update(ctx, question_id, answer, updated_by, new_question, question):
    """Update the answer (and optionally the question) of an entry."""
    if new_question.strip() and not question.strip():
        raise click.UsageError("--question is required when --new-question is given")

    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_update():
        await system.provider.update_qna(question_id, answer, updated_by, new_question, question)
        system.console.print(f"[green]✅ Update submitted for entry {question_id}[/green]")

    run_command(run_update())


@cli.command()
@click.argument('question_id', type=int)
@click.pass_context
def delete(ctx, question_id):
    """Delete an entry from the knowledge base."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_delete():
        await system.provider.delete_qna(question_id)
        system.console.print(f"[green]✅ Delete submitted for entry {question_id}[/green]")

    run_command(run_delete())


@cli.command()
@click.argument('question')
@click.option('--test', 'is_test', is_flag=True, help='Query the test knowledge base')
@click.pass_context
def query(ctx, question, is_test):
    """Ask the knowledge base a question."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_query():
        results = await system.provider.generate_answer(question, is_test)
        system.display_answers(question, results)

    run_command(run_query())


@cli.command()
@click.option('--environment', '-e', type=click.Choice([e.value for e in Environment]),
              default=Environment.PROD.value, help='Knowledge base environment')
@click.option('--knowledge-base-id', '-k', default=None, help='Knowledge base id (defaults to configured)')
@click.pass_context
def export(ctx, environment, knowledge_base_id):
    """Download every entry of the knowledge base."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_export():
        kb_id = knowledge_base_id or await system.active_knowledge_base_id()
        entries = await system.provider.download_knowledgebase(kb_id, Environment(environment))
        system.display_entries(entries)

    run_command(run_export())


@cli.command()
@click.option('--force', '-f', is_flag=True, help='Publish even when nothing changed')
@click.pass_context
def publish(ctx, force):
    """Publish the knowledge base when it has unpublished changes."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_publish():
        kb_id = await system.active_knowledge_base_id()
        if not force and not await system.provider.get_publish_status(kb_id):
            system.console.print("[yellow]Knowledge base is already up to date[/yellow]")
            return

        await system.provider.publish_knowledgebase(kb_id)
        system.console.print(f"[green]✅ Published knowledge base {kb_id}[/green]")

    run_command(run_publish())


@cli.command()
@click.pass_context
def status(ctx):
    """Show the publish status of the knowledge base."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_status():
        kb_id = await system.active_knowledge_base_id()
        needs_publish = await system.provider.get_publish_status(kb_id)
        ever_published = await system.provider.get_initial_published_status(kb_id)

        table = Table(title="Knowledge Base Status")
        table.add_column("Property", style="cyan")
        table.add_column("Value", style="white")

        table.add_row("Knowledge Base Id", kb_id)
        table.add_row("Published", "Yes" if ever_published else "No")
        table.add_row("Needs Publish", "Yes" if needs_publish else "No")
        table.add_row("Score Threshold", f"{system.settings.score_threshold:.2f}")

        system.console.print(table)

    run_command(run_status())


@cli.command()
@click.argument('operation_id')
@click.pass_context
def operation(ctx, operation_id):
    """Check the state of a knowledge base update operation."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_operation():
        op = await system.qna_maker_client.get_operation(operation_id)
        message = f"Operation {op.operation_id}: {op.operation_state}"
        if op.error_response:
            message += f"\n{op.error_response}"
        if not op.is_finished:
            border_style = "blue"
        elif op.operation_state == "Failed":
            border_style = "red"
        else:
            border_style = "green"
        system.console.print(Panel(message, border_style=border_style))

    run_command(run_operation())


@cli.command('set-kb')
@click.argument('knowledge_base_id')
@click.pass_context
def set_kb(ctx, knowledge_base_id):
    """Set the active knowledge base id."""
    system = FAQPlusQnaSystem(ctx.obj['config'])

    async def run_set_kb():
        await system.configuration_provider.upsert_configuration_data(
            CONFIGURATION_INFO_PARTITION_KEY,
            ConfigurationEntityTypes.KNOWLEDGE_BASE_ID,
            knowledge_base_id.strip(),
        )
        system.console.print(f"[green]✅ Active knowledge base set to {knowledge_base_id.strip()}[/green]")

    run_command(run_set_kb())


if __name__ == "__main__":
    cli()
