"""
Prompt Template for transaction extraction.

This is configuration, not logic. The system instruction encodes the
extraction contract the parser relies on:

    ```json
    {"valor": number, "categoria": string, "descricao": string,
     "tipo": "receita"|"despesa", "timestamp": "ISO Date"}
    ```
    <short confirmation for the human>

Bump PROMPT_VERSION whenever the contract text changes so audit logs
can be tied to the instruction that produced them.
"""

from dataclasses import dataclass

PROMPT_VERSION = "2024.1"

SYSTEM_INSTRUCTION = """
Atue como o motor de inteligência do "Finance Pro AI", um controlador de custos via chat. Sua principal função é converter mensagens informais em dados estruturados.

DIRETRIZES DE PERSONALIDADE:
- Tom de voz: Luxuoso, minimalista, direto e motivador.
- Idioma: Português Brasil.

REGRAS DE RESPOSTA:
1. Extração de Dados: Sempre identifique [Valor], [Categoria], [Descrição] e [Tipo: receita ou despesa].
2. Formato de Saída Obrigatório: Toda resposta deve iniciar com um bloco JSON invisível para o usuário (delimitado por ```json) com os campos: {"valor": number, "categoria": string, "descricao": string, "tipo": "receita"|"despesa", "timestamp": "ISO Date"}.
3. Feedback Humano: Após o JSON, envie uma confirmação curta, elegante e motivadora usando emojis premium. Ex: "✅ Registrado! R$ 50,00 em Lazer. Seu limite mensal ainda está saudável. 🥂"
4. Inteligência Financeira: Se o usuário perguntar "Como estou hoje?", ou variações, analise o histórico fornecido e gere um resumo executivo com insights acionáveis (sem o bloco JSON).
5. Erros: Se o usuário enviar algo vago, peça o valor ou a categoria educadamente (sem o bloco JSON).

EXEMPLO DE RESPOSTA:
```json
{
  "valor": 150.00,
  "categoria": "Gastronomia",
  "descricao": "Jantar no Fasano",
  "tipo": "despesa",
  "timestamp": "2023-10-27T20:00:00Z"
}
```
✅ Registrado! R$ 150,00 em Gastronomia. Sua curadoria financeira reflete seu bom gosto. 🥂
""".strip()

AUDIO_INSTRUCTION = (
    "Analise este áudio e extraia os dados financeiros "
    "conforme as instruções de sistema."
)

NO_HISTORY_CONTEXT = "Nenhum histórico disponível ainda."

HISTORY_CONTEXT_HEADER = "Histórico Recente (contexto para análise):"

# Fixed user-facing replies. Technical errors are never shown to the user.
APOLOGY_MESSAGES = {
    "web": (
        "💎 Tivemos um breve contratempo em nossos servidores de alta "
        "performance. Poderia repetir os detalhes?"
    ),
    "telegram": "💎 Falha momentânea na conexão neural. Tente novamente.",
    "whatsapp_text": (
        "💎 Ocorreu uma interrupção em nossa rede de alta performance. "
        "Poderia repetir o registro?"
    ),
    "whatsapp_audio": (
        "💎 Ocorreu uma interrupção em nossa rede de alta performance. "
        "Poderia repetir o registro?"
    ),
}

CLARIFICATION_MESSAGE = (
    "💎 Não consegui registrar essa movimentação com precisão. "
    "Poderia repetir informando o valor, a categoria e se é receita ou despesa?"
)

AUDIO_FAILED_MESSAGE = "Não foi possível processar o áudio."

# Sent when the model returned only the JSON block and nothing else
EMPTY_REPLY_FALLBACK = "✅ Registrado."

WELCOME_MESSAGE = (
    "Bem-vindo ao centro de comando Finance Pro. "
    "Como posso otimizar seu patrimônio hoje? ✨"
)

BOT_START_MESSAGE = "💎 Finance Pro AI Online. Envie seus gastos ou ganhos."


@dataclass(frozen=True)
class PromptTemplate:
    """
    Versioned extraction contract handed to the extraction agent.

    Channels may carry their own apology wording; everything the
    parser depends on lives in system_instruction.
    """
    version: str = PROMPT_VERSION
    system_instruction: str = SYSTEM_INSTRUCTION
    audio_instruction: str = AUDIO_INSTRUCTION
    no_history_context: str = NO_HISTORY_CONTEXT
    history_context_header: str = HISTORY_CONTEXT_HEADER
    clarification_message: str = CLARIFICATION_MESSAGE

    def apology_for(self, channel: str) -> str:
        """Fixed apology for a failed model call on this channel."""
        return APOLOGY_MESSAGES.get(channel, APOLOGY_MESSAGES["web"])


DEFAULT_PROMPT = PromptTemplate()
