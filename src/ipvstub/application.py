import argparse
from typing import Optional
from typing import Union

from flask.app import Flask

from ipvstub.configure import CredentialIssuerConfiguration
from ipvstub.configure import OrchestratorConfiguration
from ipvstub.configure import create_from_config_file
from ipvstub.logging import configure_logging
from ipvstub.orchestrator import OrchestratorClient
from ipvstub.server import Server
from ipvstub.template_handler import TEMPLATE_DIR
from ipvstub.views import cred_issuer_views
from ipvstub.views import handle_exception
from ipvstub.views import orchestrator_views


def _init_app(config, name, **kwargs) -> Flask:
    app = Flask(
        name, static_url_path="", template_folder=config.get("template_dir") or TEMPLATE_DIR, **kwargs
    )
    app.srv_config = config
    app.register_error_handler(Exception, handle_exception)
    return app


def cred_issuer_init_app(
    config: Union[dict, CredentialIssuerConfiguration], name: Optional[str] = None, **kwargs
) -> Flask:
    if isinstance(config, dict):
        config = CredentialIssuerConfiguration(config)

    app = _init_app(config, name or __name__, **kwargs)
    app.register_blueprint(cred_issuer_views)

    app.server = Server(config)
    return app


def orchestrator_init_app(
    config: Union[dict, OrchestratorConfiguration],
    name: Optional[str] = None,
    httpc: Optional[object] = None,
    **kwargs
) -> Flask:
    if isinstance(config, dict):
        config = OrchestratorConfiguration(config)

    app = _init_app(config, name or __name__, **kwargs)
    app.register_blueprint(orchestrator_views)
    app.orchestrator = OrchestratorClient(config, httpc=httpc)
    return app


def _run(app, config):
    web_conf = config["webserver"]
    app.run(
        host=web_conf.get("domain", "0.0.0.0"),
        port=web_conf.get("port"),
        debug=web_conf.get("debug", False),
        threaded=True,
    )


def _parse_args(argv, description):
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("-d", dest="debug", action="store_true", help="Log at DEBUG level")
    parser.add_argument(dest="config", nargs="?", default="", help="YAML configuration file")
    return parser.parse_args(argv)


def run_cred_issuer(argv=None):
    args = _parse_args(argv, "Credential issuer stub")
    config = create_from_config_file(CredentialIssuerConfiguration, filename=args.config)
    configure_logging(
        debug=args.debug, config=config.get("logging"), level=config.get("log_level")
    )
    _run(cred_issuer_init_app(config, "ipvstub_cred_issuer"), config)


def run_orchestrator(argv=None):
    args = _parse_args(argv, "Orchestrator stub")
    config = create_from_config_file(OrchestratorConfiguration, filename=args.config)
    configure_logging(
        debug=args.debug, config=config.get("logging"), level=config.get("log_level")
    )
    _run(orchestrator_init_app(config, "ipvstub_orchestrator"), config)
