"""Manual generation and the HTTP form of the pre-generation hook."""

from fastapi import APIRouter, Depends

from living_world.models import GenerationContext

from .deps import services
from .models import GenerateBody, InterceptBody

router = APIRouter()


@router.post("/generate")
async def generate(body: GenerateBody, svc=Depends(services)):
    """Generate world state now. Disabled + not manual → nothing happens."""
    text = await svc.builder.generate(body.messages, manual=body.manual)
    return {"generated": text is not None, "world_state": text or ""}


@router.post("/intercept")
async def intercept(body: InterceptBody, svc=Depends(services)):
    """Run the interceptor over a chat and return it, augmented or not.

    Always answers 200: interceptor failures degrade to an unchanged chat.
    """
    context = GenerationContext(
        messages=body.chat,
        context_size=body.context_size,
        kind=body.type,
        manual=body.manual,
    )
    applied = await svc.gate.run(context)
    return {"applied": applied, "chat": context.messages}
