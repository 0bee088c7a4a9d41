"""
Thoughtchain MCP Server

Stateful reasoning-chain tools over MCP stdio: numbered thoughts, branches,
tags, search and SQLite-backed sessions that survive restarts.
"""

import signal
import sys
from typing import Optional

from fastmcp import FastMCP

from .config import ServerConfig, load_config
from .exceptions import PersistenceError
from .logging_config import configure_file_logging, configure_logger
from .services.registrars import SessionToolsRegistrar, ThinkingToolsRegistrar
from .tools.session_store import SessionStore
from .tools.thinking import OperationsHandler, ThinkingSession

logger = configure_logger(__name__)

INSTRUCTIONS = """Thoughtchain records your reasoning as a numbered chain of thoughts.

- `think` adds the next step; `revise` corrects an earlier one; `complete` concludes.
- `branch` explores an alternative from the latest thought; `switch_branch`,
  `close_branch` and `merge_branch` manage branches.
- `tag`, `search`, `get_history` and `get_thought` navigate the chain.
- `export` and `visualize` render it.
- Every thought is saved as you go. `session_save` names the session,
  `session_list` / `session_load` / `session_summary` bring earlier sessions back."""


def open_store(db_path: str) -> Optional[SessionStore]:
    """Open the session store, or return None to run memory-only."""
    try:
        store = SessionStore(db_path)
    except PersistenceError as e:
        logger.warning("Session persistence disabled, running memory-only: %s", e)
        return None
    logger.info("Session store: %s", store.db_path)
    return store


class ThinkingServer:
    """
    Thoughtchain MCP Server.

    ::: This is-in-layer Presentation-Layer.
    ::: This is a model-context-protocol-server.
    ::: This is a process-entry-point.
    ::: This is stateful.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or load_config()
        log_path = configure_file_logging(self.config.log_file)
        if log_path:
            logger.info("Logging to %s", log_path)

        self.store = open_store(self.config.db_path)
        self.session = ThinkingSession(
            self.store,
            echo_thoughts=self.config.echo_thoughts,
            verbose_thought_logging=self.config.verbose_thought_logging,
        )
        self.handler = OperationsHandler(self.session)

        self.app = FastMCP("thoughtchain", instructions=INSTRUCTIONS)
        self.registrars = [
            ThinkingToolsRegistrar(self.handler, self.config.max_response_size),
            SessionToolsRegistrar(self.handler, self.config.max_response_size),
        ]
        for registrar in self.registrars:
            registrar.register(self.app)

    def close(self) -> None:
        if self.store is not None:
            self.store.close()
            self.store = None

    def run(self):
        """
        Start the MCP server with graceful shutdown support.
        """
        def signal_handler(signum, frame):
            """Handle shutdown signals gracefully"""
            sig_name = signal.Signals(signum).name
            logger.warning("Received %s, initiating graceful shutdown...", sig_name)
            sys.exit(0)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        try:
            mode = "memory-only" if self.store is None else "persistent"
            logger.info("Thoughtchain MCP Server starting (%s mode)...", mode)
            self.app.run()

        except KeyboardInterrupt:
            logger.warning("Keyboard interrupt received, shutting down...")

        finally:
            self.close()
            logger.info("Server shutdown complete")


def create_server(config: Optional[ServerConfig] = None) -> ThinkingServer:
    """Factory function to create server instance"""
    return ThinkingServer(config)


def _print_setup_instructions():
    """Print setup instructions when run directly from terminal."""
    print("""
Thoughtchain - stateful reasoning-chain MCP server

  Add to an MCP host (stdio transport):
    claude mcp add thoughtchain -e THOUGHTCHAIN_PROJECT_ROOT=/path/to/your/project -- thoughtchain --stdio

  Configuration (thoughtchain.json in the project root, or environment):
    db_path                  THOUGHTCHAIN_DB_PATH            (":memory:" for ephemeral sessions)
    log_file                 THOUGHTCHAIN_LOG_FILE           ("" disables file logging)
    echo_thoughts            THOUGHTCHAIN_ECHO_THOUGHTS
    verbose_thought_logging  THOUGHTCHAIN_VERBOSE_LOGGING
    max_response_size        THOUGHTCHAIN_MAX_RESPONSE_SIZE
""")


def main():
    """Main entry point.

    When run with --stdio (by an MCP host), starts the MCP server.
    Otherwise prints setup instructions.
    """
    if "--stdio" in sys.argv:
        server = create_server()
        server.run()
    else:
        _print_setup_instructions()


if __name__ == "__main__":
    main()
