# chitchat/api/bots.py
from fastapi import APIRouter, Depends

from chitchat.api.dependencies import get_ai_registry, get_current_active_user
from chitchat.infrastructure import schemas
from chitchat.infrastructure.ai_providers import AIProviderRegistry

router = APIRouter()


@router.get("/providers", response_model=list[schemas.ProviderInfo])
async def read_providers(
    registry: AIProviderRegistry = Depends(get_ai_registry),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return [
        schemas.ProviderInfo(
            name=provider.provider_name,
            supported_models=list(provider.supported_models),
        )
        for provider in registry.providers()
    ]


@router.post("/generate", response_model=schemas.BotGenerateResponse)
async def generate_reply(
    request: schemas.BotGenerateRequest,
    registry: AIProviderRegistry = Depends(get_ai_registry),
    current_user: schemas.User = Depends(get_current_active_user),
):
    model, text = await registry.generate(
        request.provider,
        request.prompt,
        request.api_key,
        model=request.model,
        context=request.context,
    )
    return schemas.BotGenerateResponse(provider=request.provider, model=model, text=text)


@router.post("/test", response_model=schemas.BotTestResponse)
async def test_provider(
    request: schemas.BotTestRequest,
    registry: AIProviderRegistry = Depends(get_ai_registry),
    current_user: schemas.User = Depends(get_current_active_user),
):
    ok = await registry.test_connection(request.provider, request.api_key, request.model)
    return schemas.BotTestResponse(provider=request.provider, ok=ok)
