"""Admission-time fingerprint injection.

Exports:
    AdmissionInterceptor -- Kind dispatch + in-place annotation mutation.
    create_webhook_app   -- FastAPI app speaking AdmissionReview v1.
"""

from transync.admission.interceptor import AdmissionInterceptor
from transync.admission.webhook import build_patch, create_webhook_app

__all__ = ["AdmissionInterceptor", "build_patch", "create_webhook_app"]
