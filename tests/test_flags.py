import asyncio

from sqlalchemy import insert

from app.core.database.base import generate_uuid
from app.features.flags.models import FeatureFlag, user_flags
from app.features.flags.resolver import FeatureFlagResolver, FlagState, SqlFlagEvaluator


def static_evaluator(rows):
    async def evaluate(_user_id):
        return rows
    return evaluate


async def test_flags_are_returned_verbatim():
    resolver = FeatureFlagResolver(static_evaluator([
        {"name": "guest_chat", "enabled": True},
        {"name": "beta_features", "enabled": False},
    ]))

    assert await resolver.flags_for(generate_uuid()) == [
        FlagState("guest_chat", True),
        FlagState("beta_features", False),
    ]


async def test_evaluator_error_yields_empty():
    async def broken(_user_id):
        raise RuntimeError("rule engine down")

    resolver = FeatureFlagResolver(broken)

    assert await resolver.flags_for(generate_uuid()) == []
    assert await resolver.has_flag(generate_uuid(), "guest_chat") is False


async def test_evaluator_timeout_yields_empty():
    async def slow(_user_id):
        await asyncio.sleep(1)
        return [{"name": "guest_chat", "enabled": True}]

    resolver = FeatureFlagResolver(slow, timeout=0.01)

    assert await resolver.flags_for(generate_uuid()) == []


async def test_has_flag():
    resolver = FeatureFlagResolver(static_evaluator([
        {"name": "guest_chat", "enabled": True},
        {"name": "beta_features", "enabled": False},
    ]))
    user_id = generate_uuid()

    assert await resolver.has_flag(user_id, "guest_chat") is True
    assert await resolver.has_flag(user_id, "beta_features") is False
    assert await resolver.has_flag(user_id, "missing") is False
    assert await resolver.has_flag(None, "guest_chat") is False
    assert await resolver.has_flag(user_id, None) is False


async def test_sql_evaluator(db, factory):
    user = await factory.profile()
    other = await factory.profile()
    chat = FeatureFlag(id=generate_uuid(), name="guest_chat")
    beta = FeatureFlag(id=generate_uuid(), name="beta_features")
    db.add_all([chat, beta])
    await db.commit()
    await db.execute(insert(user_flags).values(user_id=user.id, flag_id=chat.id))
    await db.commit()

    resolver = FeatureFlagResolver(SqlFlagEvaluator(db))

    assert await resolver.flags_for(user.id) == [
        FlagState("beta_features", False),
        FlagState("guest_chat", True),
    ]
    assert await resolver.has_flag(other.id, "guest_chat") is False
    assert await resolver.flags_for(generate_uuid()) == []
