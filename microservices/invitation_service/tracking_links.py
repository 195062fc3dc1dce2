"""
Tracking link generation

Builds per-creator tracking links for every CTA link of a campaign. Runs
against a store scope so acceptance can generate links inside its
transaction.
"""

import logging
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import quote

from .models import CtaLink, TrackingLink

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_letters + string.digits
QR_CODE_ENDPOINT = "https://api.qrserver.com/v1/create-qr-code/"


class TrackingCodeExhaustedError(Exception):
    """No unique tracking code found within the attempt budget"""


def generate_tracking_code(length: int = 8) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def build_short_url(base_url: str, tracking_code: str) -> str:
    return f"{base_url}?code={tracking_code}"


def build_qr_code_url(url: str, size: int = 300) -> str:
    return f"{QR_CODE_ENDPOINT}?size={size}x{size}&data={quote(url, safe='')}&format=png"


class TrackingLinkGenerator:
    """Creates missing tracking links for a (campaign, creator) pair"""

    links_table = "creator_tracking_links"
    cta_table = "campaign_cta_links"

    def __init__(
        self,
        base_url: str,
        code_length: int = 8,
        max_attempts: int = 5,
        qr_code_size: int = 300,
    ):
        self.base_url = base_url
        self.code_length = code_length
        self.max_attempts = max_attempts
        self.qr_code_size = qr_code_size

    async def _unique_code(self, store) -> str:
        for _ in range(self.max_attempts):
            code = generate_tracking_code(self.code_length)
            if await store.count(self.links_table, {"tracking_code": code}) == 0:
                return code
        raise TrackingCodeExhaustedError(
            f"no unique tracking code after {self.max_attempts} attempts"
        )

    async def generate(self, store, campaign_id: str, creator_id: str) -> List[TrackingLink]:
        """
        Ensure one link per CTA link of the campaign.

        Existing links for (cta_link_id, creator) are left untouched; only the
        newly created ones are returned.
        """
        cta_rows = await store.select(self.cta_table, {"campaign_id": campaign_id}, order_by=["created_at"])
        if not cta_rows:
            logger.warning(f"Campaign {campaign_id} has no CTA links, no tracking links generated")
            return []

        created: List[TrackingLink] = []
        for row in cta_rows:
            cta = CtaLink(
                id=row["id"],
                campaign_id=row["campaign_id"],
                original_url=row["original_url"],
                label=row.get("label"),
            )
            existing = await store.count(
                self.links_table, {"cta_link_id": cta.id, "creator_id": creator_id}
            )
            if existing:
                continue

            code = await self._unique_code(store)
            short_url = build_short_url(self.base_url, code)
            link = TrackingLink(
                id=str(uuid.uuid4()),
                campaign_id=campaign_id,
                creator_id=creator_id,
                cta_link_id=cta.id,
                tracking_code=code,
                short_url=short_url,
                original_url=cta.original_url,
                qr_code_url=build_qr_code_url(short_url, self.qr_code_size),
                created_at=datetime.now(timezone.utc),
            )
            await store.insert(self.links_table, link.model_dump())
            created.append(link)

        logger.info(f"Generated {len(created)} tracking links for creator {creator_id} on campaign {campaign_id}")
        return created

    @staticmethod
    def row_to_link(row: dict) -> Optional[TrackingLink]:
        if not row:
            return None
        return TrackingLink(**{k: row.get(k) for k in TrackingLink.model_fields if k in row})
