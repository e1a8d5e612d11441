import os

from ipvstub.application import cred_issuer_init_app
from ipvstub.application import orchestrator_init_app
from ipvstub.configure import CredentialIssuerConfiguration
from ipvstub.configure import OrchestratorConfiguration
from ipvstub.configure import create_from_config_file
from ipvstub.logging import configure_logging

dir_path = os.path.dirname(os.path.realpath(__file__))

if os.environ.get("STUB") == "orchestrator":
    config = create_from_config_file(
        OrchestratorConfiguration, os.path.join(dir_path, "orchestrator.yaml")
    )
    configure_logging(config=config.get("logging"), level=config.get("log_level"))
    app = orchestrator_init_app(config, "ipvstub_orchestrator")
else:
    config = create_from_config_file(
        CredentialIssuerConfiguration, os.path.join(dir_path, "cred_issuer.yaml")
    )
    configure_logging(config=config.get("logging"), level=config.get("log_level"))
    app = cred_issuer_init_app(config, "ipvstub_cred_issuer")
