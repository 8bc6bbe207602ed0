from fastapi import APIRouter, Depends

from passbridge.dependencies import get_current_admin, get_orchestrator
from passbridge.schemas.diagnostics import DiagnosticReport
from passbridge.schemas.passes import VerificationResult
from passbridge.services.diagnostics import DiagnosticsService
from passbridge.services.orchestrator import PassOrchestrator

router = APIRouter(dependencies=[Depends(get_current_admin)])


@router.get("/verify", response_model=VerificationResult)
async def verify_credentials(orchestrator: PassOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.verify_credentials()


@router.get("/report", response_model=DiagnosticReport)
async def diagnostics_report(orchestrator: PassOrchestrator = Depends(get_orchestrator)):
    return await DiagnosticsService(orchestrator).run_report()
