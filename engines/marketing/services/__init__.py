"""
CRISTAL Marketing Engine — Service Layer
==========================================
Marketing campaigns: plain records written through the mutation
pipeline, plus read-side audience and message previews.

Status lifecycle: draft → scheduled → sent. Sending itself happens
outside this service; it only records the counters.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from core.state.entities import Campaign, Client
from core.state.store import Collection
from core.sync.pipeline import MutationPipeline
from core.time.clock import now_iso

from engines.marketing.policies import (
    audience,
    campaign_status_is_valid,
    render_message,
    template_by_id,
)

logger = logging.getLogger("cristal.marketing")


class MarketingService:

    def __init__(self, pipeline: MutationPipeline) -> None:
        self._pipeline = pipeline
        self._store = pipeline.store

    def list_campaigns(self) -> List[Campaign]:
        return self._store.all(Collection.CAMPAIGNS)

    def get_campaign(self, campaign_id: str) -> Optional[Campaign]:
        return self._store.get(Collection.CAMPAIGNS, campaign_id)

    # ── Campaigns ─────────────────────────────────────────────

    async def create_campaign(self, campaign: Campaign) -> Optional[Campaign]:
        if not campaign_status_is_valid(campaign.status):
            logger.warning("campaign %r rejected: unknown status %r", campaign.name, campaign.status)
            return None
        now = now_iso(self._pipeline.clock)
        campaign = replace(
            campaign,
            created_at=campaign.created_at or now,
            date=campaign.date or now,
            selected_client_ids=tuple(campaign.selected_client_ids),
        )
        return await self._pipeline.create(Collection.CAMPAIGNS, campaign)

    async def create_from_template(self, template_id: str, name: Optional[str] = None) -> Optional[Campaign]:
        template = template_by_id(template_id)
        if template is None:
            logger.warning("unknown campaign template %s", template_id)
            return None
        return await self.create_campaign(Campaign(
            id="",
            name=name or template.label,
            campaign_type=template.id,
            target_segment=template.suggested_segment,
            message_template=template.default_message,
        ))

    async def update_campaign(self, campaign_id: str, **changes) -> bool:
        if "status" in changes and not campaign_status_is_valid(changes["status"]):
            logger.warning("campaign %s: unknown status %r", campaign_id, changes["status"])
            return False
        if "selected_client_ids" in changes:
            changes["selected_client_ids"] = tuple(changes["selected_client_ids"])
        return await self._pipeline.update(Collection.CAMPAIGNS, campaign_id, changes)

    async def delete_campaign(self, campaign_id: str) -> bool:
        return await self._pipeline.delete(Collection.CAMPAIGNS, campaign_id)

    # ── Audience ──────────────────────────────────────────────

    def campaign_audience(self, campaign_id: str) -> List[Client]:
        campaign = self.get_campaign(campaign_id)
        if campaign is None:
            return []
        return audience(campaign, self._store.all(Collection.CLIENTS))

    def preview_message(self, campaign_id: str, client_id: str) -> Optional[str]:
        campaign = self.get_campaign(campaign_id)
        client = self._store.get(Collection.CLIENTS, client_id)
        if campaign is None or client is None:
            return None
        return render_message(
            campaign.message_template, client, campaign.discount, campaign.custom_variables
        )
