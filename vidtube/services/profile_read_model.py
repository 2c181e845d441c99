"""Read views over accounts, subscriptions and watch history."""

from __future__ import annotations

from sqlalchemy import exists, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from vidtube.core.errors import NotFoundError, ValidationError
from vidtube.db.models import Account, Subscription, Video, WatchHistoryEntry
from vidtube.schema.account import ChannelProfile, VideoOwner, WatchHistoryItem
from vidtube.services.account_store import normalise_username


async def count_subscribers(session: AsyncSession, channel_id: int) -> int:
    """Number of accounts subscribed to the channel."""

    stmt = select(func.count()).select_from(Subscription).where(Subscription.channel_id == channel_id)
    return int(await session.scalar(stmt) or 0)


async def count_subscriptions(session: AsyncSession, subscriber_id: int) -> int:
    """Number of channels the account is subscribed to."""

    stmt = select(func.count()).select_from(Subscription).where(Subscription.subscriber_id == subscriber_id)
    return int(await session.scalar(stmt) or 0)


async def is_subscribed(session: AsyncSession, *, viewer_id: int | None, channel_id: int) -> bool:
    if viewer_id is None:
        return False
    stmt = select(
        exists().where(Subscription.channel_id == channel_id, Subscription.subscriber_id == viewer_id)
    )
    return bool(await session.scalar(stmt))


async def get_channel_profile(session: AsyncSession, viewer_id: int | None, channel_username: str) -> ChannelProfile:
    """Build the public channel view for `channel_username` as seen by `viewer_id`."""

    username = normalise_username(channel_username or "")
    if not username:
        raise ValidationError("Username is missing")

    channel = await session.scalar(select(Account).where(Account.username == username))
    if channel is None:
        raise NotFoundError("Channel does not exist")

    return ChannelProfile(
        full_name=channel.full_name,
        username=channel.username,
        subscribers_count=await count_subscribers(session, channel.id),
        channels_subscribed_to_count=await count_subscriptions(session, channel.id),
        is_subscribed=await is_subscribed(session, viewer_id=viewer_id, channel_id=channel.id),
        avatar=channel.avatar,
        cover_image=channel.cover_image or "",
        email=channel.email,
    )


async def get_watch_history(session: AsyncSession, account_id: int) -> list[WatchHistoryItem]:
    """Resolve the account's watched videos in order, each with its owner's public identity."""

    stmt = (
        select(WatchHistoryEntry)
        .join(WatchHistoryEntry.video)
        .join(Video.owner)
        .options(contains_eager(WatchHistoryEntry.video).contains_eager(Video.owner))
        .where(WatchHistoryEntry.account_id == account_id)
        .order_by(WatchHistoryEntry.position, WatchHistoryEntry.id)
    )
    entries = (await session.execute(stmt)).scalars().all()
    return [_map_entry(entry) for entry in entries]


def _map_entry(entry: WatchHistoryEntry) -> WatchHistoryItem:
    video = entry.video
    owner = video.owner
    return WatchHistoryItem(
        id=video.id,
        video_file=video.video_file,
        thumbnail=video.thumbnail,
        title=video.title,
        description=video.description,
        duration=video.duration,
        views=video.views,
        is_published=video.is_published,
        created_at=video.created_at,
        owner=VideoOwner(full_name=owner.full_name, username=owner.username, avatar=owner.avatar),
    )
