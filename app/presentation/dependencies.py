from fastapi import Request

from app.application.pipeline import AdmissionPipeline
from app.domain.ports.email_port import EmailPort


def get_pipeline(request: Request) -> AdmissionPipeline:
    # This is set in app.main create_app()
    return request.app.state.admission


def get_email_port(request: Request) -> EmailPort:
    # This is set in app.main lifespan()
    return request.app.state.email_adapter
