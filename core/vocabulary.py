"""Built-in Spanish/English term catalog, used when no catalog file is configured."""

from .catalog import Catalog
from .models import Term

# topic -> [(english, spanish, hint)]
DEFAULT_VOCABULARY = {
    'Months': [
        ('january', 'enero', '❄️'),
        ('february', 'febrero', '💘'),
        ('march', 'marzo', '🌱'),
        ('april', 'abril', '🌧️'),
        ('may', 'mayo', '🌷'),
        ('june', 'junio', '☀️'),
        ('july', 'julio', '🏖️'),
        ('august', 'agosto', '🌻'),
        ('september', 'septiembre', '🍂'),
        ('october', 'octubre', '🎃'),
        ('november', 'noviembre', '🍁'),
        ('december', 'diciembre', '🎄'),
    ],
    'Days': [
        ('monday', 'lunes', ''),
        ('tuesday', 'martes', ''),
        ('wednesday', 'miércoles', ''),
        ('thursday', 'jueves', ''),
        ('friday', 'viernes', ''),
        ('saturday', 'sábado', ''),
        ('sunday', 'domingo', ''),
    ],
    'Colors': [
        ('red', 'rojo', '🟥'),
        ('blue', 'azul', '🟦'),
        ('green', 'verde', '🟩'),
        ('yellow', 'amarillo', '🟨'),
        ('orange', 'naranja', '🟧'),
        ('purple', 'morado', '🟪'),
        ('black', 'negro', '⬛'),
        ('white', 'blanco', '⬜'),
        ('brown', 'marrón', '🟫'),
    ],
    'Family': [
        ('mother', 'madre', '👩'),
        ('father', 'padre', '👨'),
        ('brother', 'hermano', '👦'),
        ('sister', 'hermana', '👧'),
        ('grandfather', 'abuelo', '👴'),
        ('grandmother', 'abuela', '👵'),
        ('uncle', 'tío', ''),
        ('aunt', 'tía', ''),
    ],
    'Animals': [
        ('dog', 'perro', '🐶'),
        ('cat', 'gato', '🐱'),
        ('bird', 'pájaro', '🐦'),
        ('fish', 'pez', '🐟'),
        ('horse', 'caballo', '🐴'),
        ('cow', 'vaca', '🐮'),
        ('pig', 'cerdo', '🐷'),
        ('mouse', 'ratón', '🐭'),
        ('rabbit', 'conejo', '🐰'),
        ('bear', 'oso', '🐻'),
        ('lion', 'león', '🦁'),
        ('elephant', 'elefante', '🐘'),
    ],
    'Food': [
        ('bread', 'pan', '🍞'),
        ('milk', 'leche', '🥛'),
        ('water', 'agua', '💧'),
        ('rice', 'arroz', '🍚'),
        ('egg', 'huevo', '🥚'),
        ('cheese', 'queso', '🧀'),
        ('apple', 'manzana', '🍎'),
        ('banana', 'plátano', '🍌'),
        ('salad', 'ensalada', '🥗'),
    ],
}


def default_catalog() -> Catalog:
    """Build the built-in catalog, topics in definition order."""
    entries = [
        Term(english, spanish, topic, hint)
        for topic, items in DEFAULT_VOCABULARY.items()
        for english, spanish, hint in items
    ]
    return Catalog(entries, list(DEFAULT_VOCABULARY.keys()))
