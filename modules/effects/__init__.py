"""Silhouette, particle and effect-mode logic."""
from .silhouette import SilhouetteBuilder, SilhouetteMask
from .particles import ParticleSet, ParticleSystem
from .state_machine import EffectStateMachine

__all__ = [
    "SilhouetteBuilder",
    "SilhouetteMask",
    "ParticleSet",
    "ParticleSystem",
    "EffectStateMachine",
]
