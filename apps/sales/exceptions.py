"""
HTTP-facing exceptions for the sales app.

Views convert service errors (apps.sales.services.exceptions) into these.
"""
from rest_framework.exceptions import APIException


class DocumentNumberUnavailable(APIException):
    """Number allocation gave up; the client may simply retry."""
    status_code = 503
    default_detail = 'Failed to generate document number, please retry.'
    default_code = 'document_number_unavailable'


class DealNotFound(APIException):
    status_code = 404
    default_detail = 'Deal not found.'
    default_code = 'deal_not_found'


class DealActionRejected(APIException):
    """The deal is in the wrong state or missing data for this action."""
    status_code = 400
    default_detail = 'This action is not allowed for the deal.'
    default_code = 'deal_action_rejected'
