"""
CRISTAL Marketing Engine — Policies
=====================================
Campaign templates, audience selection and message rendering.

Message variables are `{name}` placeholders:

    {cliente}   client's first name
    {veiculo}   model of the client's first vehicle
    {desconto}  campaign discount value
    anything else comes from the campaign's custom variables

Unknown placeholders are left as written.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Tuple

from core.state.entities import Campaign, CampaignStatus, Client

SEGMENT_ALL = "all"


@dataclass(frozen=True)
class CampaignTemplate:
    id: str
    label: str
    category: str  # sales | retention | relationship
    default_message: str
    suggested_segment: str
    variables: Tuple[str, ...] = ()


CAMPAIGN_TEMPLATES: Tuple[CampaignTemplate, ...] = (
    CampaignTemplate(
        id="flash",
        label="Flash Schedule (Horários Vazios)",
        category="sales",
        default_message=(
            "Olá {cliente}! Liberou um horário exclusivo para AMANHÃ às {horario} com "
            "{desconto}% de desconto em qualquer serviço. Responda \"QUERO\" para garantir!"
        ),
        suggested_segment="recurring",
        variables=("{cliente}", "{horario}", "{desconto}"),
    ),
    CampaignTemplate(
        id="reactivation",
        label="Reativação (Saudade)",
        category="retention",
        default_message=(
            "Oi {cliente}, faz tempo que não cuidamos do seu {veiculo}! Sentimos sua falta. "
            "Que tal agendar uma visita e ganhar uma hidratação de plásticos de cortesia?"
        ),
        suggested_segment="inactive",
        variables=("{cliente}", "{veiculo}"),
    ),
    CampaignTemplate(
        id="vip",
        label="VIP Exclusivo",
        category="relationship",
        default_message=(
            "Olá {cliente}! Como nosso cliente VIP, você tem acesso antecipado à nossa nova "
            "agenda. Garanta seu horário para o {veiculo} antes de todo mundo!"
        ),
        suggested_segment="vip",
        variables=("{cliente}", "{veiculo}"),
    ),
    CampaignTemplate(
        id="birthday",
        label="Aniversário",
        category="relationship",
        default_message=(
            "Parabéns {cliente}! No mês do seu aniversário, a Cristal Care tem um presente: "
            "{desconto}% OFF no Polimento Técnico. Venha deixar seu {veiculo} novo de novo!"
        ),
        suggested_segment=SEGMENT_ALL,
        variables=("{cliente}", "{desconto}", "{veiculo}"),
    ),
    CampaignTemplate(
        id="promo",
        label="Promoção de Serviço",
        category="sales",
        default_message=(
            "Oportunidade, {cliente}! Com a previsão de chuva, proteja seu {veiculo} com nossa "
            "Vitrificação. Preço especial de R$ {valor} apenas esta semana."
        ),
        suggested_segment=SEGMENT_ALL,
        variables=("{cliente}", "{veiculo}", "{valor}"),
    ),
    CampaignTemplate(
        id="combo",
        label="Combo/Pacote",
        category="sales",
        default_message=(
            "Combo Especial {nome_combo}: {lista_servicos} por apenas R$ {valor}! "
            "Ideal para seu {veiculo}. Agende agora!"
        ),
        suggested_segment=SEGMENT_ALL,
        variables=("{nome_combo}", "{lista_servicos}", "{valor}", "{veiculo}"),
    ),
)


def template_by_id(template_id: str) -> Optional[CampaignTemplate]:
    return next((t for t in CAMPAIGN_TEMPLATES if t.id == template_id), None)


def campaign_status_is_valid(status: Optional[str]) -> bool:
    return status in CampaignStatus.ALL


# ── Audience ──────────────────────────────────────────────────

def audience(campaign: Campaign, clients: Iterable[Client]) -> List[Client]:
    """Explicitly selected clients win over the target segment."""
    clients = list(clients)
    if campaign.selected_client_ids:
        wanted = set(campaign.selected_client_ids)
        return [c for c in clients if c.id in wanted]
    if campaign.target_segment == SEGMENT_ALL:
        return clients
    return [c for c in clients if c.segment == campaign.target_segment]


# ── Rendering ─────────────────────────────────────────────────

def render_message(
    message: str,
    client: Client,
    discount: Optional[Mapping] = None,
    custom_variables: Optional[Mapping[str, str]] = None,
) -> str:
    first_name = client.name.split(" ")[0] if client.name else ""
    vehicle = client.vehicles[0].model if client.vehicles and client.vehicles[0].model else "veículo"
    rendered = message.replace("{cliente}", first_name).replace("{veiculo}", vehicle)
    if discount and discount.get("value"):
        rendered = rendered.replace("{desconto}", _number(discount["value"]))
    for key, value in (custom_variables or {}).items():
        rendered = rendered.replace("{%s}" % key, str(value))
    return rendered


def _number(value) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)
