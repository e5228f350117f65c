"""Order workflow constants.

Defines the status and role enumerations and the Status Graph: which
department owns each status and which edges leave it.  The graph is
the single source of truth consulted by ``OrderService`` before any
order is mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db import models


class OrderStatus(models.TextChoices):
    CRIADO = "CRIADO", "Criado"
    ANALISE_PCP = "ANALISE_PCP", "Análise PCP"
    EM_PRODUCAO = "EM_PRODUCAO", "Em produção"
    QUALIDADE_PENDENTE = "QUALIDADE_PENDENTE", "Qualidade pendente"
    REPROVADO = "REPROVADO", "Reprovado"
    EM_MONTAGEM = "EM_MONTAGEM", "Em montagem"
    EM_EMBALAGEM = "EM_EMBALAGEM", "Em embalagem"
    AGUARDANDO_EXPEDICAO = "AGUARDANDO_EXPEDICAO", "Aguardando expedição"
    EM_FATURAMENTO = "EM_FATURAMENTO", "Em faturamento"
    EM_TRANSPORTE = "EM_TRANSPORTE", "Em transporte"
    CONCLUIDO = "CONCLUIDO", "Concluído"


class Role(models.TextChoices):
    ADMIN = "ADMIN", "Administração"
    GERENTE = "GERENTE", "Gerência"
    ENGENHARIA = "ENGENHARIA", "Engenharia"
    VENDAS = "VENDAS", "Vendas"
    PCP = "PCP", "PCP"
    PRODUCAO = "PRODUCAO", "Produção"
    QUALIDADE = "QUALIDADE", "Qualidade"
    MONTAGEM = "MONTAGEM", "Montagem"
    EMBALAGEM = "EMBALAGEM", "Embalagem"
    EXPEDICAO = "EXPEDICAO", "Expedição"
    FATURAMENTO = "FATURAMENTO", "Faturamento"
    TRANSPORTE = "TRANSPORTE", "Transporte"


class Priority(models.TextChoices):
    BAIXA = "BAIXA", "Baixa"
    MEDIA = "MEDIA", "Média"
    ALTA = "ALTA", "Alta"


# ---------------------------------------------------------------------------
# Status Graph
# ---------------------------------------------------------------------------

BATCH_NUMBER = "batch_number"
INVOICE_NUMBER = "invoice_number"

COMPANION_FIELDS: frozenset[str] = frozenset({BATCH_NUMBER, INVOICE_NUMBER})


@dataclass(frozen=True)
class Transition:
    """A single edge of the Status Graph."""

    source: OrderStatus
    target: OrderStatus
    action: str = "Aprovado"
    requires: frozenset[str] = frozenset()
    note_required: bool = False

    def default_note(self, role: str) -> str:
        return f"{self.action} por {str(role)}"


@dataclass(frozen=True)
class StatusNode:
    owner: Optional[Role]
    next: Optional[OrderStatus]
    alternates: tuple[OrderStatus, ...] = ()


STATUS_GRAPH: dict[str, StatusNode] = {
    OrderStatus.CRIADO: StatusNode(Role.VENDAS, OrderStatus.ANALISE_PCP),
    OrderStatus.ANALISE_PCP: StatusNode(Role.PCP, OrderStatus.EM_PRODUCAO),
    OrderStatus.EM_PRODUCAO: StatusNode(
        Role.PRODUCAO, OrderStatus.QUALIDADE_PENDENTE
    ),
    OrderStatus.QUALIDADE_PENDENTE: StatusNode(
        Role.QUALIDADE,
        OrderStatus.EM_MONTAGEM,
        alternates=(OrderStatus.REPROVADO,),
    ),
    OrderStatus.REPROVADO: StatusNode(Role.PRODUCAO, OrderStatus.EM_PRODUCAO),
    OrderStatus.EM_MONTAGEM: StatusNode(
        Role.MONTAGEM,
        OrderStatus.EM_EMBALAGEM,
        alternates=(OrderStatus.QUALIDADE_PENDENTE,),
    ),
    OrderStatus.EM_EMBALAGEM: StatusNode(
        Role.EMBALAGEM, OrderStatus.AGUARDANDO_EXPEDICAO
    ),
    OrderStatus.AGUARDANDO_EXPEDICAO: StatusNode(
        Role.EXPEDICAO, OrderStatus.EM_FATURAMENTO
    ),
    OrderStatus.EM_FATURAMENTO: StatusNode(
        Role.FATURAMENTO, OrderStatus.EM_TRANSPORTE
    ),
    OrderStatus.EM_TRANSPORTE: StatusNode(Role.TRANSPORTE, OrderStatus.CONCLUIDO),
    OrderStatus.CONCLUIDO: StatusNode(None, None),
}

# Edges with companion data, mandatory notes or a distinct action label.
# Every other edge declared in STATUS_GRAPH is a plain "Aprovado" advance.
_SPECIAL_TRANSITIONS: tuple[Transition, ...] = (
    Transition(
        OrderStatus.ANALISE_PCP,
        OrderStatus.EM_PRODUCAO,
        action="Lote gerado",
        requires=frozenset({BATCH_NUMBER}),
    ),
    Transition(
        OrderStatus.QUALIDADE_PENDENTE,
        OrderStatus.REPROVADO,
        action="Bloqueado",
        note_required=True,
    ),
    Transition(
        OrderStatus.REPROVADO,
        OrderStatus.EM_PRODUCAO,
        action="Desbloqueado/Liberado",
        requires=frozenset({BATCH_NUMBER}),
    ),
    Transition(
        OrderStatus.EM_MONTAGEM,
        OrderStatus.QUALIDADE_PENDENTE,
        action="Devolvido",
        note_required=True,
    ),
    Transition(
        OrderStatus.EM_FATURAMENTO,
        OrderStatus.EM_TRANSPORTE,
        action="Faturado",
        requires=frozenset({INVOICE_NUMBER}),
    ),
)


def _build_transitions() -> dict[tuple[str, str], Transition]:
    special = {(t.source, t.target): t for t in _SPECIAL_TRANSITIONS}
    transitions: dict[tuple[str, str], Transition] = {}
    for source, node in STATUS_GRAPH.items():
        if source == OrderStatus.CRIADO:
            continue
        targets = ([node.next] if node.next else []) + list(node.alternates)
        for target in targets:
            key = (source, target)
            transitions[key] = special.get(key) or Transition(source, target)
    return transitions


TRANSITIONS: dict[tuple[str, str], Transition] = _build_transitions()

TERMINAL_STATES: set[str] = {OrderStatus.CONCLUIDO}

INITIAL_STATUS = OrderStatus.ANALISE_PCP


def get_transition(source: str, target: str) -> Optional[Transition]:
    """Return the graph edge ``source -> target`` or ``None``."""
    return TRANSITIONS.get((source, target))


def owner_of(status: str) -> Optional[Role]:
    node = STATUS_GRAPH.get(status)
    return node.owner if node else None


def statuses_owned_by(role: str) -> list[str]:
    """Live statuses a department works on (its queue)."""
    return [
        status
        for status, node in STATUS_GRAPH.items()
        if node.owner == role and status != OrderStatus.CRIADO
    ]


# ---------------------------------------------------------------------------
# Departments
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Department:
    label: str
    next: Optional[OrderStatus]


DEPARTMENT_CONFIG: dict[str, Department] = {
    Role.ENGENHARIA: Department("Engenharia", None),
    Role.VENDAS: Department("Vendas", OrderStatus.ANALISE_PCP),
    Role.PCP: Department("PCP", OrderStatus.EM_PRODUCAO),
    Role.PRODUCAO: Department("Produção", OrderStatus.QUALIDADE_PENDENTE),
    Role.QUALIDADE: Department("Qualidade", OrderStatus.EM_MONTAGEM),
    Role.MONTAGEM: Department("Montagem", OrderStatus.EM_EMBALAGEM),
    Role.EMBALAGEM: Department("Embalagem", OrderStatus.AGUARDANDO_EXPEDICAO),
    Role.EXPEDICAO: Department("Expedição", OrderStatus.EM_FATURAMENTO),
    Role.FATURAMENTO: Department("Faturamento", OrderStatus.EM_TRANSPORTE),
    Role.TRANSPORTE: Department("Transporte", OrderStatus.CONCLUIDO),
    Role.GERENTE: Department("Gerência", None),
    Role.ADMIN: Department("Administração", None),
}

# ---------------------------------------------------------------------------
# Log notes
# ---------------------------------------------------------------------------

NOTE_CREATED = "Pedido criado"
NOTE_ROUTED_TO_PCP = "Movido para o PCP"
NOTE_FULL_PRODUCTION = "Produção concluída total."
NOTE_PARTIAL_DELIVERY = "Entrega parcial"
NOTE_REMAINING_BALANCE = "Saldo remanescente"

REMAINDER_SUFFIX = "-REM"

ORDER_NUMBER_MAX_RETRIES = 5
