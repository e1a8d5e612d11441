"""GPG45 scores an operator attaches to an issued credential."""
import logging
from typing import Optional
from typing import Union

from oidcmsg.message import Message

from ipvstub.util import is_blank

logger = logging.getLogger(__name__)

EVIDENCE = "EVIDENCE"
ACTIVITY = "ACTIVITY"
FRAUD = "FRAUD"
VERIFICATION = "VERIFICATION"
USER_ASSERTED = "USER_ASSERTED"

CRI_TYPES = [EVIDENCE, ACTIVITY, FRAUD, VERIFICATION, USER_ASSERTED]

STRENGTH = "strengthValue"
VALIDITY = "validityValue"
ACTIVITY_VALUE = "activityValue"
FRAUD_VALUE = "fraudValue"
VERIFICATION_VALUE = "verificationValue"

SCORE_PARAMS = [STRENGTH, VALIDITY, ACTIVITY_VALUE, FRAUD_VALUE, VERIFICATION_VALUE]

# which parameters belong to which type, and what to call them in the credential
SCORE_SPEC = {
    EVIDENCE: {"evidence": {"strength": STRENGTH, "validity": VALIDITY}},
    ACTIVITY: {"activity": ACTIVITY_VALUE},
    FRAUD: {"fraud": FRAUD_VALUE},
    VERIFICATION: {"verification": VERIFICATION_VALUE},
}

INVALID_GPG45_SCORE = ("1001", "Invalid GPG45 score provided")
INVALID_SCORE = {
    EVIDENCE: ("1002", "Invalid numbers provided for evidence strength and validity"),
    ACTIVITY: ("1003", "Invalid number provided for activity"),
    FRAUD: ("1004", "Invalid number provided for fraud"),
    VERIFICATION: ("1005", "Invalid number provided for verification"),
}


class GPG45Error(ValueError):
    def __init__(self, error, error_description):
        ValueError.__init__(self, error, error_description)
        self.error = error
        self.error_description = error_description


def display_flags(cri_type: str) -> dict:
    return {
        "isEvidenceType": cri_type == EVIDENCE,
        "isActivityType": cri_type == ACTIVITY,
        "isFraudType": cri_type == FRAUD,
        "isVerificationType": cri_type == VERIFICATION,
        "isUserAssertedType": cri_type == USER_ASSERTED,
    }


def _params_of(spec):
    res = []
    for val in spec.values():
        if isinstance(val, dict):
            res.extend(_params_of(val))
        else:
            res.append(val)
    return res


def _collect(spec, request):
    res = {}
    for name, val in spec.items():
        if isinstance(val, dict):
            res[name] = _collect(val, request)
        else:
            res[name] = int(request.get(val))
    return res


def verify_gpg45(cri_type: str, request: Union[Message, dict]) -> Optional[dict]:
    """
    Check the score parameters sent for a credential issuer of a specific
    type.

    :param cri_type: Credential issuer type
    :param request: The request carrying the score parameters
    :return: The score block to put in the credential, None if the type
        has no score
    :raises GPG45Error: If the parameters do not fit the type
    """
    try:
        _spec = SCORE_SPEC[cri_type]
    except KeyError:
        return None

    _own = _params_of(_spec)
    try:
        score = _collect(_spec, request)
    except (TypeError, ValueError):
        logger.warning("Bad GPG45 score for {}".format(cri_type))
        raise GPG45Error(*INVALID_SCORE[cri_type])

    for param in SCORE_PARAMS:
        if param not in _own and not is_blank(request.get(param)):
            logger.warning("{} is not a GPG45 score for {}".format(param, cri_type))
            raise GPG45Error(*INVALID_GPG45_SCORE)

    return score
