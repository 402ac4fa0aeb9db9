"""Prompt assembler: system prompt from context + feature list, user prompt from transcript."""
from __future__ import annotations

from collections.abc import Sequence

from convo_analyzer.features import lookup
from convo_analyzer.types import AnalysisContext

NOT_INFORMED = "não informado"

TRANSCRIPT_START = "--- TRANSCRIÇÃO ---"
TRANSCRIPT_END = "--- FIM DA TRANSCRIÇÃO ---"

_PERSONA = (
    "Você é um Analista Semântico + Temporal especializado em Vendas, "
    "com experiência em atendimento ao cliente e otimização de funil.\n"
    "Sua tarefa é analisar a transcrição de um chat entre um cliente (CLIENT) "
    "e um vendedor (VENDOR)."
)

_INSTRUCTIONS = [
    "Baseie-se apenas no texto da transcrição formatada.",
    "Para features temporais, calcule a partir dos marcadores relativos [MM:SS] "
    "de cada mensagem e cite-os na explicação.",
    "O 'value' de features temporais deve ser um número JSON (não texto); "
    "tempos de resposta e durações em minutos (float).",
    "O 'value' de features semânticas deve ser um texto curto.",
    "Retorne APENAS o JSON final, aderindo estritamente ao schema, nada fora do formato.",
]

_NEXT_ACTION_REQUIRED = (
    "Você DEVE fornecer a próxima ação OTIMIZADA para o VENDEDOR no campo 'nextAction', "
    "com a respectiva 'explanation'. A ação deve ser prática e acionável."
)
_NEXT_ACTION_FORBIDDEN = "NÃO inclua o campo 'nextAction' no JSON de saída."


def _or_placeholder(value: str | None) -> str:
    value = (value or "").strip()
    return value or NOT_INFORMED


def format_feature_list(keys: Sequence[str]) -> str:
    return "\n".join(f"- {lookup(k)} ({k})" for k in keys)


def build_system_prompt(context: AnalysisContext, keys: Sequence[str]) -> str:
    """
    Goal and product lines are always present (placeholder when absent) so the
    prompt shape is the same across requests.
    """
    instructions = list(_INSTRUCTIONS)
    instructions.append(_NEXT_ACTION_REQUIRED if context.include_next_action else _NEXT_ACTION_FORBIDDEN)
    numbered = "\n".join(f"{i}. {text}" for i, text in enumerate(instructions, 1))
    return (
        f"{_PERSONA}\n\n"
        "Features solicitadas (retorne cada uma como um item do array 'features'):\n"
        f"{format_feature_list(keys)}\n\n"
        "Contexto:\n"
        f"- Objetivo da conversa: {_or_placeholder(context.goal)}\n"
        f"- Produto/serviço: {_or_placeholder(context.product_or_service)}\n\n"
        "Instruções:\n"
        f"{numbered}"
    )


def build_user_prompt(transcript_text: str) -> str:
    return (
        "Analise a transcrição abaixo (tempo relativo em [MM:SS]) e extraia as features solicitadas.\n"
        "Retorne SOMENTE o JSON válido conforme o schema.\n\n"
        f"{TRANSCRIPT_START}\n"
        f"{transcript_text}\n"
        f"{TRANSCRIPT_END}"
    )
