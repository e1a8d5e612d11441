"""Rendering of the HTML pages the stubs show to the operator."""
import logging
import os
from typing import Optional

from jinja2 import Environment
from jinja2 import FileSystemLoader
from jinja2 import TemplateNotFound
from jinja2 import select_autoescape

from ipvstub.exception import ConfigurationError

logger = logging.getLogger(__name__)

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "templates")


class TemplateHandler(object):
    def render(self, template: str, **kwargs) -> str:
        raise NotImplementedError()


class Jinja2TemplateHandler(TemplateHandler):
    """
    Renders pages from a Jinja2 environment. Values in page_defaults are
    available to every page unless the caller passes its own.
    """

    def __init__(self, template_env: Environment, page_defaults: Optional[dict] = None):
        self.template_env = template_env
        self.page_defaults = page_defaults or {}

    def render(self, template: str, **kwargs) -> str:
        try:
            _page = self.template_env.get_template(template)
        except TemplateNotFound:
            logger.error("No page template named {}".format(template))
            raise ConfigurationError("Missing page template: {}".format(template))

        _args = dict(self.page_defaults)
        _args.update(kwargs)
        return _page.render(**_args)


def init_template_handler(template_dir: Optional[str] = None, **page_defaults):
    _env = Environment(
        loader=FileSystemLoader(template_dir or TEMPLATE_DIR),
        autoescape=select_autoescape(["html", "xml"]),
        trim_blocks=True,
    )
    return Jinja2TemplateHandler(_env, page_defaults)
