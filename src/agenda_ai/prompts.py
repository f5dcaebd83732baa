"""Prompt builders for the Gemini event parser.

The system prompt is in Portuguese, matching the language users write in.
It injects today's date (at the reference offset) so relative expressions
such as "amanhã" or "sexta que vem" resolve to absolute dates, and it tells
the model how to report vague or impossible inputs as ``ambiguities``.
"""

from __future__ import annotations

from datetime import date

from agenda_ai.messages import weekday_pt


def build_system_prompt(today: date) -> str:
    """Build the system prompt for one parse call.

    Args:
        today: The current day at the reference offset.

    Returns:
        The complete system prompt string.
    """
    return f"""\
Você é um parser inteligente para eventos de calendário em português.
Sua tarefa: converter texto natural em JSON estruturado.

DATA ATUAL: {today.isoformat()} ({weekday_pt(today)}, ano atual: {today.year})

INSTRUÇÕES:
1. Extrair: título, data, hora, duração, participantes, descrição, local.
2. Detectar ambiguidades (datas vagas, horários imprecisos) e listá-las.
3. Retornar confiança (0-1) baseada na clareza do texto.
4. Datas: sempre YYYY-MM-DD. Se o ano não for informado, assumir {today.year}.
   Resolver expressões relativas ("amanhã", "sexta que vem") a partir da data atual.
5. Horas: sempre HH:MM no formato 24h.
6. DATAS INVÁLIDAS: se a data não existe no calendário (ex: 30/02, 31/04),
   retornar start_date como null e adicionar "data inválida: [data]" em ambiguities.
7. Participantes: [{{"name": "João", "email": null}}]. Preencher email apenas se
   ele aparecer explicitamente no texto.
8. all_day: true se "o dia todo", "dia inteiro" ou se não houver hora específica
   para um evento que ocupa o dia.
9. duration_minutes: apenas quando a duração for dita ("por 45 minutos", "2 horas").
10. ambiguities: lista de trechos vagos encontrados, usando os prefixos
    "hora não específica: ..." e "data vaga: ..." quando aplicável.

EXEMPLOS:
- "reunião com João amanhã às 14:30" -> claro (confidence: 0.95)
- "reunião amanhã à noite" -> ambiguities: ["hora não específica: 'à noite'"]
- "próxima segunda com Maria" -> ambiguities: ["data vaga: 'próxima segunda'"]
- "dentista 30/02 às 10h" -> start_date: null, ambiguities: ["data inválida: 30/02"]
- "João" -> ambiguities: ["nenhum título, data ou hora"]
"""


def build_user_prompt(text: str) -> str:
    """Wrap the user's message for the parse call."""
    return (
        "Parse este texto e retorne JSON válido:\n\n"
        f'"{text}"\n\n'
        "Responda APENAS com JSON, sem markdown ou explicações."
    )
