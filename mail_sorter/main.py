"""
Outlook Mail Sorter - CLI Entry Point

Signs in to Microsoft Graph, classifies inbox emails with a language model
and files them into category folders.
"""

import asyncio
import sys

import click

from .core.config import get_config
from .core.exceptions import AuthenticationError, ConfigurationError
from .core.logging_config import resolve_log_level, setup_logging


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--log-file", type=str, help="Log file path")
@click.pass_context
def cli(ctx, verbose, log_file):
    """Outlook Mail Sorter CLI.

    AI-powered classification and filing of Outlook.com inbox emails.
    """
    ctx.ensure_object(dict)

    # --verbose wins over LOG_LEVEL
    log_level = "DEBUG" if verbose else resolve_log_level(get_config().app.log_level)
    setup_logging(log_level=log_level, log_file=log_file)

    ctx.obj["verbose"] = verbose
    ctx.obj["log_file"] = log_file


def _print_client_id_help():
    click.echo("\n💡 Check your Azure app registration (https://portal.azure.com):")
    click.echo("   1. Azure Active Directory > App registrations > your app")
    click.echo("   2. Copy the 'Application (client) ID' into MICROSOFT_CLIENT_ID in .env")
    click.echo("   3. Under Authentication, add the redirect URI http://localhost:8080/callback")
    click.echo("   4. Under 'Supported account types', allow personal Microsoft accounts")


def _fail(error: Exception, cfg=None):
    """Print an error and exit 1, with app-registration hints when relevant."""
    click.echo(f"\n❌ {error}", err=True)
    if "client_id" in str(error).lower() or (cfg is not None and not cfg.graph_api.client_id):
        _print_client_id_help()
    sys.exit(1)


def _connect(cfg):
    """
    Sign in and build the mailbox client.

    Returns:
        MailboxClient for the signed-in user
    """
    from .auth.auth_manager import GraphAuthenticator
    from .graph.client import GraphAPIClient
    from .graph.mail import MailboxClient

    errors = cfg.validate()
    if errors:
        raise ConfigurationError("; ".join(errors))

    auth = GraphAuthenticator(
        cfg.graph_api,
        timeout=cfg.app.auth_timeout_seconds,
        grace_period=cfg.app.missing_code_grace_seconds,
    )
    asyncio.run(auth.sign_in())

    client = GraphAPIClient(token_provider=auth.get_access_token)
    return MailboxClient(client)


# ============================================================================
# MAIN OPERATIONS
# ============================================================================


@cli.command()
@click.option("--dry-run", is_flag=True, help="Classify only, don't modify the mailbox")
@click.option("--sort-mode", is_flag=True, help="Process all recent inbox emails, not only unread")
@click.option("--limit", type=int, help="Maximum number of emails to fetch")
def run(dry_run, sort_mode, limit):
    """Sign in, classify and sort inbox emails.

    Examples:
        mail-sorter run                  # Unread emails
        mail-sorter run --dry-run        # Log decisions only
        mail-sorter run --sort-mode      # Re-sort the latest inbox emails
        mail-sorter run --limit 50
    """
    from .actions.applier import DecisionApplier
    from .ai.classifier import EmailClassifier, build_backend
    from .graph.folders import FolderResolver
    from .sorter import InboxSorter

    cfg = get_config()

    if dry_run:
        cfg.app.dry_run = True
    if sort_mode:
        cfg.app.sort_mode = True
    if limit is not None:
        cfg.app.email_limit = limit

    click.echo("🚀 Starting Outlook Mail Sorter")
    if cfg.app.dry_run:
        click.echo("🧪 Dry run: no changes will be made")

    try:
        mailbox = _connect(cfg)
        classifier = EmailClassifier(build_backend(cfg.classifier))
        applier = DecisionApplier(mailbox, FolderResolver(mailbox))
        stats = InboxSorter(mailbox, classifier, applier, cfg.app).run()
    except (AuthenticationError, ConfigurationError) as e:
        _fail(e, cfg)
    except KeyboardInterrupt:
        click.echo("\n👋 Interrupted, goodbye!")
        sys.exit(0)
    except Exception as e:
        click.echo(f"\n❌ Run failed: {e}", err=True)
        sys.exit(1)

    click.echo(f"\n✅ Done: {stats.processed} processed, {stats.failed} failed")


@cli.command()
def folders():
    """Sign in and list mail folders.

    Example:
        mail-sorter folders
    """
    cfg = get_config()

    try:
        mailbox = _connect(cfg)
        root = mailbox.get_folders()
        inbox = mailbox.get_inbox_subfolders()
    except (AuthenticationError, ConfigurationError) as e:
        _fail(e, cfg)
    except KeyboardInterrupt:
        click.echo("\n👋 Interrupted, goodbye!")
        sys.exit(0)
    except Exception as e:
        click.echo(f"\n❌ Error listing folders: {e}", err=True)
        sys.exit(1)

    click.echo("\n📁 Root folders:")
    for folder in root:
        click.echo(f"  - {folder.display_name}")

    click.echo("\n📥 Inbox subfolders:")
    for folder in inbox:
        click.echo(f"  - {folder.display_name}")
    click.echo("")


# ============================================================================
# CONFIGURATION
# ============================================================================


@cli.group()
def config():
    """Configuration management."""
    pass


@config.command("show")
def config_show():
    """Show current configuration (non-sensitive).

    Example:
        mail-sorter config show
    """
    cfg = get_config()

    click.echo("\n⚙️  Current Configuration")
    click.echo("=" * 80)

    click.echo("\n📊 Runtime Settings:")
    click.echo(f"  Email Limit: {cfg.app.email_limit}")
    click.echo(f"  Sort Mode: {'Enabled' if cfg.app.sort_mode else 'Disabled'}")
    click.echo(f"  Dry Run: {'Enabled' if cfg.app.dry_run else 'Disabled'}")
    click.echo(f"  Log Level: {cfg.app.log_level}")
    click.echo(f"  Sign-in Timeout: {cfg.app.auth_timeout_seconds} seconds")

    click.echo("\n🤖 Classifier:")
    click.echo(f"  Provider: {cfg.classifier.provider}")
    if cfg.classifier.provider == "claude":
        click.echo(f"  Model: {cfg.classifier.claude_model}")
    else:
        click.echo(f"  Host: {cfg.classifier.ollama_host}")
        click.echo(f"  Model: {cfg.classifier.model}")

    click.echo("\n🔐 Credentials Status (.env):")
    click.echo(f"  Graph API: {'Configured' if cfg.graph_api.client_id else 'Not set'}")
    click.echo(f"  Tenant: {cfg.graph_api.tenant_id}")
    click.echo(f"  Redirect URI: {cfg.graph_api.redirect_uri}")
    click.echo(f"  Client Secret: {'Configured' if cfg.graph_api.client_secret else 'Not set (public client)'}")
    click.echo(f"  Claude API: {'Configured' if cfg.classifier.anthropic_api_key else 'Not set'}")

    click.echo("\n" + "=" * 80 + "\n")


@config.command("validate")
def config_validate():
    """Validate configuration.

    Example:
        mail-sorter config validate
    """
    cfg = get_config()
    errors = cfg.validate()

    click.echo("\n🔍 Validating Configuration")
    click.echo("=" * 80)

    if not errors:
        click.echo("\n✅ Configuration is valid")
        click.echo("")
        sys.exit(0)
    else:
        click.echo("\n❌ Configuration has errors:")
        for error in errors:
            click.echo(f"   • {error}")
        if not cfg.graph_api.client_id:
            _print_client_id_help()
        click.echo("")
        sys.exit(1)


if __name__ == "__main__":
    cli()
