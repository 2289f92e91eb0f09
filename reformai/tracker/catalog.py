"""
Suggestion catalog for the task form: rooms, task titles grouped by trade, and the checklist
templates used to break a known task title into sub-steps.

PROMPT> python -m reformai.tracker.catalog
"""
from typing import Optional
from reformai.tracker.task_types import SubTask

SUBTASK_TEMPLATES: dict[str, list[str]] = {
    # Pintura
    'Pintura de paredes': ['Forração', 'Lixamento', 'Selador', '1ª Demão', '2ª Demão', 'Retoque'],
    'Pintura de teto': ['Preparação', 'Fundo Preparador', 'Pintura', 'Limpeza de luminárias'],
    'Aplicação de massa corrida': ['Limpeza superfície', '1ª demão massa', 'Lixamento', '2ª demão massa', 'Lixamento fino'],
    # Elétrica
    'Trocar fiação completa': ['Mapeamento', 'Passagem de guias', 'Troca de cabos', 'Conexão disjuntores', 'Testes'],
    'Instalar novos pontos de tomada': ['Corte alvenaria', 'Conduítes', 'Chumbamento caixas', 'Fiação', 'Espelhos'],
    'Trocar luminárias/LEDs': ['Remoção antigas', 'Furação/Suporte', 'Conexão elétrica', 'Fixação'],
    # Hidráulica
    'Trocar encanamento': ['Demolição rastro', 'Instalação tubos', 'Testes de estanqueidade', 'Chumbamento'],
    'Reparo em infiltração': ['Identificação origem', 'Abertura local', 'Impermeabilização', 'Fechamento'],
    'Instalar bacia sanitária': ['Limpeza base', 'Anel de vedação', 'Fixação parafusos', 'Vedação silicone', 'Teste descarga'],
    # Piso
    'Colocação de porcelanato': ['Nivelamento', 'Argamassa', 'Assentamento', 'Uso de niveladores', 'Rejunte'],
    'Instalar piso laminado': ['Manta acústica', 'Encaixe réguas', 'Rodapés', 'Perfis de porta'],
    # Marcenaria/Móveis
    'Instalar móveis planejados': ['Conferência nível', 'Montagem módulos', 'Ajuste portas', 'Puxadores', 'Limpeza'],
    'Montagem de guarda-roupa': ['Base', 'Estrutura lateral', 'Prateleiras', 'Portas/Gavetas'],
    # Estrutural/Geral
    'Demolir alvenaria': ['Proteção área', 'Escoramento (se necessário)', 'Quebra', 'Ensacamento entulho', 'Remoção'],
    'Limpeza pós-obra': ['Remoção entulho fino', 'Limpeza vidros', 'Aspiração pó', 'Brilho revestimentos'],
}

ROOM_SUGGESTIONS: dict[str, list[str]] = {
    'Internos': ['Sala', 'Cozinha', 'Banheiro Social', 'Suíte', 'Quarto 1', 'Quarto 2', 'Closet', 'Corredor', 'Área de Serviço', 'Escritório'],
    'Externos': ['Varanda', 'Garagem', 'Jardim', 'Fachada', 'Quintal', 'Telhado', 'Churrasqueira', 'Muro'],
}

TASK_SUGGESTIONS: list[dict] = [
    {'category': 'PINTURA', 'tasks': ['Pintura de paredes', 'Pintura de teto', 'Envernizar portas/janelas', 'Aplicação de massa corrida']},
    {'category': 'ELÉTRICA', 'tasks': ['Trocar fiação completa', 'Instalar novos pontos de tomada', 'Instalação de chuveiro', 'Trocar luminárias/LEDs']},
    {'category': 'HIDRÁULICA', 'tasks': ['Trocar encanamento', 'Instalar novas torneiras', 'Reparo em infiltração', 'Instalar bacia sanitária']},
    {'category': 'PISO', 'tasks': ['Colocação de porcelanato', 'Instalar piso laminado', 'Restauração de taco', 'Nivelamento de contra-piso']},
    {'category': 'JARDINAGEM', 'tasks': ['Plantio de grama', 'Instalação de irrigação', 'Criação de canteiros', 'Instalação de deck']},
    {'category': 'MARCENARIA', 'tasks': ['Instalar móveis planejados', 'Montagem de guarda-roupa', 'Instalar prateleiras']},
    {'category': 'ESTRUTURAL', 'tasks': ['Demolir alvenaria', 'Levantar parede', 'Limpeza pós-obra', 'Troca de esquadrias']},
]


def subtasks_for_title(title: str) -> list[SubTask]:
    """
    Fresh, incomplete sub-tasks for a task title. Only exact title matches have a template.
    """
    return [SubTask(title=step) for step in SUBTASK_TEMPLATES.get(title, [])]


def category_for_title(title: str) -> Optional[str]:
    for group in TASK_SUGGESTIONS:
        if title in group['tasks']:
            return group['category']
    return None


def catalog_dict() -> dict:
    return {
        'rooms': ROOM_SUGGESTIONS,
        'tasks': TASK_SUGGESTIONS,
        'subtask_templates': SUBTASK_TEMPLATES,
    }


if __name__ == "__main__":
    import json
    print(json.dumps(catalog_dict(), indent=2, ensure_ascii=False))
