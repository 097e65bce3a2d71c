from __future__ import annotations

import random

FIRST_NAMES = [
    "Adrián", "Alejandro", "Álvaro", "Andrés", "Ángel", "Bruno", "Carlos", "Daniel", "David", "Diego",
    "Eduardo", "Emiliano", "Enzo", "Facundo", "Federico", "Fernando", "Franco", "Gabriel", "Gonzalo", "Guillermo",
    "Hugo", "Ignacio", "Iker", "Javier", "Joaquín", "Jorge", "José", "Juan", "Julián", "Leandro",
    "Lucas", "Luis", "Manuel", "Marcos", "Mario", "Martín", "Mateo", "Matías", "Maximiliano", "Miguel",
    "Nicolás", "Pablo", "Pedro", "Rafael", "Ricardo", "Rodrigo", "Santiago", "Sergio", "Tomás", "Valentín",
    "André", "Bernardo", "Diogo", "Gonçalo", "João", "Rúben", "Thiago", "Vinícius", "Luca", "Marco",
    "Alessandro", "Federico", "Lorenzo", "Matteo", "Antoine", "Hugo", "Kylian", "Olivier", "Théo", "Jules",
    "Ben", "Harry", "Jack", "James", "Kieran", "Mason", "Oliver", "Reece", "Declan", "Jordan",
]

LAST_NAMES = [
    "Acosta", "Aguirre", "Alonso", "Álvarez", "Benítez", "Blanco", "Cabrera", "Castro", "Cruz", "Delgado",
    "Díaz", "Domínguez", "Espinoza", "Fernández", "Flores", "García", "Giménez", "Gómez", "González", "Gutiérrez",
    "Hernández", "Herrera", "Ibáñez", "Iglesias", "Jiménez", "Lopez", "Luna", "Marín", "Márquez", "Martínez",
    "Medina", "Méndez", "Molina", "Morales", "Moreno", "Muñoz", "Navarro", "Núñez", "Ortega", "Ortiz",
    "Pérez", "Ramírez", "Ramos", "Reyes", "Ríos", "Rodríguez", "Romero", "Rubio", "Ruiz", "Sánchez",
    "Santos", "Silva", "Soto", "Suárez", "Torres", "Vargas", "Vázquez", "Vega", "Castillo", "Peralta",
    "Costa", "Ferreira", "Oliveira", "Pereira", "Sousa", "Rossi", "Bianchi", "Romano", "Ricci", "Conti",
    "Dubois", "Laurent", "Lefebvre", "Moreau", "Girard", "Walker", "Stones", "Rice", "Shaw", "Palmer",
]


class NameGenerator:
    """Hands out league-unique player names from a shuffled first/last pool."""

    def __init__(self, seed: int | str | None = None) -> None:
        self._rng = random.Random(seed)
        self._used: set[str] = set()
        self._pool = sorted({f"{first} {last}" for first in FIRST_NAMES for last in LAST_NAMES})
        self._rng.shuffle(self._pool)
        self._idx = 0

    def reserve(self, names: list[str]) -> None:
        self._used.update(names)

    def next_name(self) -> str:
        while self._idx < len(self._pool):
            name = self._pool[self._idx]
            self._idx += 1
            if name not in self._used:
                self._used.add(name)
                return name

        # Pool exhausted: fall back to a numbered variant.
        suffix = 2
        base = self._pool[self._rng.randrange(len(self._pool))]
        while f"{base} {suffix}" in self._used:
            suffix += 1
        candidate = f"{base} {suffix}"
        self._used.add(candidate)
        return candidate
