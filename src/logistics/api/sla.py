"""FastAPI routes for SLA policies, compliance reporting and the alert sweep."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from logistics.api.dependencies import Actor, current_actor
from logistics.api.schemas import SLAPolicyRequest, SweepRequest
from logistics.hospital.hospital import Hospital
from logistics.sla.configuration import ConfigureSLAPolicy
from logistics.sla.policy import policy_for
from logistics.sla.reporting import hospital_compliance
from logistics.sla.sweep import SweepSLA

# ---------------------------------------------------------------------------
# Hospital SLA Router
# ---------------------------------------------------------------------------
hospital_sla_router = APIRouter(prefix="/hospitals", tags=["sla"])


@hospital_sla_router.get("/{hospital_id}/sla-policy")
async def get_sla_policy(hospital_id: str) -> dict:
    """The hospital's deadlines; defaults apply until it is configured."""
    current_domain.repository_for(Hospital).get(hospital_id)
    return policy_for(hospital_id).to_dict()


@hospital_sla_router.put("/{hospital_id}/sla-policy")
async def configure_sla_policy(
    hospital_id: str, body: SLAPolicyRequest, actor: Actor = Depends(current_actor)
) -> dict:
    command = ConfigureSLAPolicy(
        hospital_id=hospital_id,
        **body.model_dump(),
        actor_id=actor.id,
        actor_role=actor.role,
        actor_hospital_id=actor.hospital_id,
    )
    return current_domain.process(command, asynchronous=False)


@hospital_sla_router.get("/{hospital_id}/sla/compliance")
async def get_compliance(hospital_id: str) -> dict:
    current_domain.repository_for(Hospital).get(hospital_id)
    return hospital_compliance(hospital_id)


# ---------------------------------------------------------------------------
# Sweep Router
# ---------------------------------------------------------------------------
sweep_router = APIRouter(prefix="/sla", tags=["sla"])


@sweep_router.post("/sweep")
async def sweep(body: SweepRequest | None = None) -> dict:
    """Raise every SLA alert that is due and not yet raised."""
    command = SweepSLA(as_of=body.as_of if body else None)
    return {"alerts": current_domain.process(command, asynchronous=False)}
