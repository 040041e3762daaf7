import os
import time
import logging
import signal
import json
import argparse

from core.app_context import AppContext
from core.config_loader import load_config
from core.errors import FunnelError
from database.database import configure
from database.init_db import init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global flag for graceful shutdown
running = True


def signal_handler(sig, frame):
    global running
    logger.info("Shutdown signal received")
    running = False


def build_context(config_path: str) -> AppContext:
    config = load_config(config_path)
    session_factory = configure(config.database.url)
    return AppContext.build(config, session_factory=session_factory)


def cmd_serve(args):
    import uvicorn

    config = load_config(args.config)
    host = args.host or config.web.host
    port = args.port or config.web.port
    # The web app loads its own config
    os.environ["CONFIG_PATH"] = os.path.abspath(args.config)
    logger.info(f"Starting Supply Funnel Web Server on {host}:{port}")
    uvicorn.run("web.backend.app:app", host=host, port=port, reload=False, log_level="info")


def cmd_init_db(args):
    config = load_config(args.config)
    configure(config.database.url)
    init_db()


def cmd_sweep_timeouts(args):
    """Expire overdue decisions once, or every --interval seconds with --loop."""
    context = build_context(args.config)
    interval = args.interval or context.config.workflow.sweep_interval_seconds

    sweep_count = 0
    while True:
        sweep_count += 1
        expired = context.engine.expire_overdue()
        logger.info(f"Sweep #{sweep_count}: expired {len(expired)} workflow(s)")
        for instance_id in expired:
            print(instance_id)

        if not args.loop:
            return
        # Sleep in chunks to allow responsive shutdown
        for _ in range(max(1, interval // 5)):
            if not running:
                return
            time.sleep(5)


def cmd_show(args):
    context = build_context(args.config)
    view = context.engine.get(args.instance_id, with_transitions=True)
    print(json.dumps({
        'instance_id': view.instance_id,
        'identity': view.identity,
        'state': view.state.value,
        'decision': view.decision,
        'org_name': view.org_name,
        'project_name': view.project_name,
        'decision_deadline': view.decision_deadline.isoformat() if view.decision_deadline else None,
        'failure_reason': view.failure_reason,
        'failure_detail': view.failure_detail,
        'failed_from_state': view.failed_from_state,
        'context': view.context,
        'transitions': view.transitions,
    }, indent=2))


def cmd_cancel(args):
    context = build_context(args.config)
    view = context.engine.cancel(args.instance_id, reason=args.reason)
    logger.info(f"Workflow {view.instance_id} is now {view.state.value}")


def main():
    parser = argparse.ArgumentParser(description="Supply Funnel")
    parser.add_argument('--config', default='config.yaml', help='Path to config.yaml')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Run the web server')
    serve.add_argument('--host', default=None)
    serve.add_argument('--port', type=int, default=None)
    serve.set_defaults(func=cmd_serve)

    init = subparsers.add_parser('init-db', help='Create database tables')
    init.set_defaults(func=cmd_init_db)

    sweep = subparsers.add_parser('sweep-timeouts', help='Fail workflows past their decision deadline')
    sweep.add_argument('--loop', action='store_true', help='Keep sweeping until interrupted')
    sweep.add_argument('--interval', type=int, default=None, help='Seconds between sweeps')
    sweep.set_defaults(func=cmd_sweep_timeouts)

    show = subparsers.add_parser('show', help='Print one workflow instance')
    show.add_argument('instance_id')
    show.set_defaults(func=cmd_show)

    cancel = subparsers.add_parser('cancel', help='Cancel a workflow instance')
    cancel.add_argument('instance_id')
    cancel.add_argument('--reason', default=None)
    cancel.set_defaults(func=cmd_cancel)

    args = parser.parse_args()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        args.func(args)
    except FunnelError as e:
        logger.error(f"{e.__class__.__name__}: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
