import json
import logging
import traceback

from flask import Blueprint
from flask import current_app
from flask import redirect
from flask import render_template
from flask import request
from flask.helpers import make_response
from oidcmsg.exception import MessageException
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

cred_issuer_views = Blueprint("cred_issuer", __name__, url_prefix="")
orchestrator_views = Blueprint("orchestrator", __name__, url_prefix="")


def do_response(endpoint, req_args, error="", **args):
    info = endpoint.do_response(request=req_args, error=error, **args)
    logger.debug("do_response: {}".format(info))

    try:
        _response_placement = info["response_placement"]
    except KeyError:
        _response_placement = endpoint.response_placement

    if _response_placement == "body":
        logger.info("Response: {}".format(info["response"]))
        resp = make_response(info["response"], info.get("response_code", 200))
    else:  # _response_placement == 'url':
        logger.info("Redirect to: {}".format(info["response"]))
        resp = redirect(info["response"])

    for key, value in info["http_headers"]:
        if _response_placement == "url" and key == "Content-type":
            continue
        resp.headers[key] = value

    return resp


def service_endpoint(endpoint):
    logger.info('At the "{}" endpoint'.format(endpoint.endpoint_name))

    http_info = {
        "headers": {k.lower(): v for k, v in request.headers.items()},
        "method": request.method,
        "url": request.url,
    }

    if request.method == "GET":
        req_args = request.args.to_dict()
    else:
        req_args = request.form.to_dict()

    try:
        req_args = endpoint.parse_request(req_args, http_info=http_info)
    except (MessageException, ValueError) as err:
        logger.error(err)
        return make_response(
            json.dumps({"error": "invalid_request", "error_description": str(err)}), 400
        )

    args = endpoint.process_request(req_args, http_info=http_info)

    if "http_response" in args:
        resp = make_response(args["http_response"], args.get("response_code", 200))
        if args.get("content_type"):
            resp.headers["Content-type"] = args["content_type"]
        return resp

    return do_response(endpoint, req_args, **args)


@cred_issuer_views.route("/")
def index():
    return render_template("index.html", cri_type=current_app.server.endpoint_context.cri_type)


@cred_issuer_views.route("/authorize")
def authorization():
    return service_endpoint(current_app.server.get_endpoint("authorization"))


@cred_issuer_views.route("/generate-response", methods=["GET", "POST"])
def generate_response():
    return service_endpoint(current_app.server.get_endpoint("finalize"))


@cred_issuer_views.route("/token", methods=["POST"])
def token():
    return service_endpoint(current_app.server.get_endpoint("token"))


@cred_issuer_views.route("/credential", methods=["GET", "POST"])
def credential():
    return service_endpoint(current_app.server.get_endpoint("credential"))


@orchestrator_views.route("/")
def orchestrator_index():
    return render_template("index.html", orchestrator=True)


@orchestrator_views.route("/authorize")
def start():
    return redirect(current_app.orchestrator.authorization_redirect())


@orchestrator_views.route("/callback")
def callback():
    _credential = current_app.orchestrator.callback(request.query_string.decode("utf-8"))
    return render_template(
        "credentials.html",
        attributes=_credential,
        attributes_json=json.dumps(_credential, indent=2),
    )


def handle_exception(err):
    if isinstance(err, HTTPException):
        return err

    message = traceback.format_exception(type(err), err, err.__traceback__)
    logger.error(message)
    return render_template("error.html", title=type(err).__name__, message=str(err)), 500
