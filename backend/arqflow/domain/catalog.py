"""Stage catalogs: the fixed, ordered stage sequence of each service type.

Catalogs are module-level immutable tuples built once at import time. Nothing
mutates them at runtime; per-project customisation happens on a copy held by
the project's workflow.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

import structlog

from arqflow.core.exceptions import UnknownServiceTypeError

logger = structlog.get_logger(__name__)


class StageColor(StrEnum):
    PURPLE = "purple"
    BLUE = "blue"
    CYAN = "cyan"
    GREEN = "green"
    YELLOW = "yellow"
    ORANGE = "orange"
    PINK = "pink"
    GRAY = "gray"
    EMERALD = "emerald"


class ServiceType(StrEnum):
    """Service types that own a stage catalog."""

    DECOREXPRESS = "decorexpress"
    PRODUCAO = "producao"
    PROJETEXPRESS = "projetexpress"


class Modality(StrEnum):
    """Delivery modality. Only decorexpress has per-modality catalogs."""

    PRESENCIAL = "presencial"
    ONLINE = "online"


# Commercial names sold as a decorexpress engagement
SERVICE_TYPE_ALIASES: dict[str, ServiceType] = {
    "arquitetonico": ServiceType.DECOREXPRESS,
    "interiores": ServiceType.DECOREXPRESS,
}


@dataclass(frozen=True)
class Stage:
    """One named step of a delivery process. Identity is ``id``."""

    id: str
    name: str
    color: StageColor
    description: str | None = None

    def to_dict(self) -> dict:
        data = {"id": self.id, "name": self.name, "color": self.color.value}
        if self.description is not None:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Stage":
        """Build a Stage from its stored form.

        Raises KeyError / ValueError on missing fields or an unknown color.
        """
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            color=StageColor(data["color"]),
            description=data.get("description"),
        )


def _stage(stage_id: str, name: str, color: StageColor, description: str) -> Stage:
    return Stage(id=stage_id, name=name, color=color, description=description)


DECOREXPRESS_PRESENCIAL_STAGES: tuple[Stage, ...] = (
    _stage("formulario", "Formulário", StageColor.PURPLE, "Cliente preencheu formulário inicial"),
    _stage("reuniao_briefing", "Reunião de Briefing", StageColor.BLUE, "Reunião para entender necessidades"),
    _stage("formulario_briefing", "Formulário de Briefing", StageColor.BLUE, "Envio do briefing detalhado"),
    _stage("moodboard", "Moodboard", StageColor.CYAN, "Criação do moodboard de referências"),
    _stage("pesquisa_produtos", "Pesquisa de Produtos", StageColor.CYAN, "Pesquisa de móveis e itens"),
    _stage("elaboracao_projeto", "Elaboração do Projeto", StageColor.GREEN, "Criação do projeto de interiores"),
    _stage("apresentacao", "Apresentação", StageColor.GREEN, "Apresentação ao cliente"),
    _stage("ajustes", "Ajustes", StageColor.YELLOW, "Revisões solicitadas pelo cliente"),
    _stage("aprovacao", "Aprovação", StageColor.YELLOW, "Aprovação final do cliente"),
    _stage("lista_compras", "Lista de Compras", StageColor.ORANGE, "Geração da lista de compras"),
    _stage("acompanhamento_compras", "Acompanhamento de Compras", StageColor.ORANGE, "Acompanhamento das compras"),
    _stage("visita_tecnica", "Visita Técnica", StageColor.PINK, "Visita para medições e ajustes"),
    _stage("acompanhamento_obra", "Acompanhamento de Obra", StageColor.PINK, "Acompanhamento da execução"),
    _stage("instalacao", "Instalação", StageColor.EMERALD, "Instalação dos itens"),
    _stage("entrega", "Entrega", StageColor.EMERALD, "Entrega final do projeto"),
)

DECOREXPRESS_ONLINE_STAGES: tuple[Stage, ...] = (
    _stage("formulario", "Formulário", StageColor.PURPLE, "Cliente preencheu formulário inicial"),
    _stage("reuniao_briefing", "Reunião de Briefing", StageColor.BLUE, "Reunião online para briefing"),
    _stage("formulario_briefing", "Formulário de Briefing", StageColor.BLUE, "Envio do briefing detalhado"),
    _stage("moodboard", "Moodboard", StageColor.CYAN, "Criação do moodboard de referências"),
    _stage("pesquisa_produtos", "Pesquisa de Produtos", StageColor.CYAN, "Pesquisa de móveis e itens"),
    _stage("elaboracao_projeto", "Elaboração do Projeto", StageColor.GREEN, "Criação do projeto de interiores"),
    _stage("apresentacao", "Apresentação", StageColor.GREEN, "Apresentação online ao cliente"),
    _stage("ajustes", "Ajustes", StageColor.YELLOW, "Revisões solicitadas pelo cliente"),
    _stage("aprovacao", "Aprovação", StageColor.YELLOW, "Aprovação final do cliente"),
    _stage("lista_compras", "Lista de Compras", StageColor.ORANGE, "Geração da lista de compras"),
    _stage("acompanhamento_compras", "Acompanhamento de Compras", StageColor.ORANGE, "Acompanhamento das compras"),
    _stage("entrega", "Entrega", StageColor.EMERALD, "Entrega final do projeto"),
)

PRODUCAO_STAGES: tuple[Stage, ...] = (
    _stage("recebimento", "Recebimento", StageColor.PURPLE, "Recebimento do pedido"),
    _stage("producao", "Produção", StageColor.BLUE, "Em produção"),
    _stage("controle_qualidade", "Controle de Qualidade", StageColor.CYAN, "Verificação de qualidade"),
    _stage("expedicao", "Expedição", StageColor.ORANGE, "Preparação para envio"),
    _stage("entregue", "Entregue", StageColor.EMERALD, "Produto entregue"),
)

PROJETEXPRESS_STAGES: tuple[Stage, ...] = (
    _stage("formulario", "Formulário", StageColor.PURPLE, "Cliente preencheu formulário inicial"),
    _stage("reuniao_briefing", "Reunião de Briefing", StageColor.BLUE, "Reunião para briefing"),
    _stage("levantamento", "Levantamento", StageColor.BLUE, "Levantamento técnico"),
    _stage("anteprojeto", "Anteprojeto", StageColor.CYAN, "Criação do anteprojeto"),
    _stage("projeto_executivo", "Projeto Executivo", StageColor.GREEN, "Desenvolvimento do projeto executivo"),
    _stage("aprovacao", "Aprovação", StageColor.YELLOW, "Aprovação do cliente"),
    _stage("detalhamento", "Detalhamento", StageColor.ORANGE, "Detalhamento técnico"),
    _stage("revisao_final", "Revisão Final", StageColor.PINK, "Revisão final dos documentos"),
    _stage("entrega", "Entrega", StageColor.EMERALD, "Entrega do projeto"),
)

# Keyed by (service type, modality); modality is None for single-catalog types
CATALOGS: dict[tuple[ServiceType, Modality | None], tuple[Stage, ...]] = {
    (ServiceType.DECOREXPRESS, Modality.PRESENCIAL): DECOREXPRESS_PRESENCIAL_STAGES,
    (ServiceType.DECOREXPRESS, Modality.ONLINE): DECOREXPRESS_ONLINE_STAGES,
    (ServiceType.PRODUCAO, None): PRODUCAO_STAGES,
    (ServiceType.PROJETEXPRESS, None): PROJETEXPRESS_STAGES,
}


def resolve_catalog_key(
    service_type: str, modality: str | None = None
) -> tuple[ServiceType, Modality | None]:
    """Normalize a (service type, modality) pair to a catalog key.

    Aliases resolve to their catalog service type. Modality defaults to
    presencial for decorexpress and is dropped for every other type.

    Raises:
        UnknownServiceTypeError: service type is neither known nor an alias,
            or the modality is not a known value for decorexpress
    """
    if service_type in SERVICE_TYPE_ALIASES:
        resolved = SERVICE_TYPE_ALIASES[service_type]
        logger.info("service_type_alias_resolved", service_type=service_type, resolved=resolved.value)
    else:
        try:
            resolved = ServiceType(service_type)
        except ValueError:
            raise UnknownServiceTypeError(service_type, modality) from None

    if resolved != ServiceType.DECOREXPRESS:
        if modality is not None:
            logger.debug("modality_ignored", service_type=resolved.value, modality=modality)
        return resolved, None

    if modality is None:
        return resolved, Modality.PRESENCIAL
    try:
        return resolved, Modality(modality)
    except ValueError:
        raise UnknownServiceTypeError(service_type, modality) from None


def stages_for(service_type: str, modality: str | None = None) -> tuple[Stage, ...]:
    """Return the catalog stages for a service type and optional modality."""
    return CATALOGS[resolve_catalog_key(service_type, modality)]


def index_of(stages: Sequence[Stage], stage_id: str) -> int | None:
    """Position of ``stage_id`` in ``stages``, or None when absent."""
    for i, stage in enumerate(stages):
        if stage.id == stage_id:
            return i
    return None


def contains(stages: Sequence[Stage], stage_id: str) -> bool:
    return index_of(stages, stage_id) is not None


def final_stage_id(service_type: str, modality: str | None = None) -> str:
    """Id of the last catalog stage; reaching it delivers the project."""
    return stages_for(service_type, modality)[-1].id
