"""The HTTP application: routes every endpoint and starts the server."""

from __future__ import annotations

import argparse
import logging
from functools import partial
from typing import Any, Callable, Mapping, Optional, Sequence

from flask import Flask, jsonify, request
from sqlalchemy.orm import Session, sessionmaker

from .config import Config, create_database, load_config
from .cors import install_cors
from .log_api import log_add, log_list
from .machine_api import machine_filter, machine_market, machine_mine
from .mailbox_api import Mailer, send_email, subscribe, unsubscribe
from .order_api import order_all, order_mine
from .reward_api import (
    reward_claimable_list,
    reward_machine_list,
    reward_period_list,
    reward_total,
)

DEFAULT_PORT = 8080

Handler = Callable[[Session, Any, Mapping[str, str]], dict[str, Any]]


def _routes(mailer: Mailer) -> dict[str, Handler]:
    return {
        "/mailbox/subscribe": lambda s, b, h: subscribe(s, b, mailer),
        "/mailbox/unsubscribe": lambda s, b, h: unsubscribe(s, b),
        "/machine/filter": lambda s, b, h: machine_filter(s),
        "/machine/market": lambda s, b, h: machine_market(s, b),
        "/machine/mine": lambda s, b, h: machine_mine(s, h, b),
        "/order/mine": lambda s, b, h: order_mine(s, h, b),
        "/order/all": lambda s, b, h: order_all(s, b),
        "/reward/total": lambda s, b, h: reward_total(s, h, b),
        "/reward/claimable/list": lambda s, b, h: reward_claimable_list(s, h, b),
        "/reward/period/list": lambda s, b, h: reward_period_list(s, h, b),
        "/reward/machine/list": lambda s, b, h: reward_machine_list(s, h, b),
        "/log/add": lambda s, b, h: log_add(s, b),
        "/log/list": lambda s, b, h: log_list(s, b),
    }


def create_app(
    config: Config,
    session_factory: Callable[[], Session],
    mailer: Optional[Mailer] = None,
) -> Flask:
    """Build the application; each request gets its own database session."""
    app = Flask(__name__)
    install_cors(app)
    if mailer is None:
        mailer = partial(send_email, config.mailbox)

    def make_view(handler: Handler) -> Callable[[], Any]:
        def view() -> Any:
            body = request.get_json(force=True, silent=True)
            session = session_factory()
            try:
                result = handler(session, body, request.headers)
            finally:
                session.close()
            return jsonify(result)

        return view

    for path, handler in _routes(mailer).items():
        app.add_url_rule(path, endpoint=path, view_func=make_view(handler), methods=["POST"])
    return app


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Load the configuration, prepare the database and serve the API."""
    parser = argparse.ArgumentParser(prog="distriindex", description="Serve the index API.")
    parser.add_argument("--config", help="path of the YAML configuration file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    config = load_config(args.config)
    engine = create_database(config)
    app = create_app(config, sessionmaker(bind=engine))
    port = int(config.server.port) if config.server.port else DEFAULT_PORT
    app.run(
        host="0.0.0.0",
        port=port,
        debug=config.server.mode == "debug",
        use_reloader=False,
    )
    return 0