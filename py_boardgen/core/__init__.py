"""
Core board generation functionality.
"""

from .lcg_prng import LcgPRNG
from .grid import Cell
from .models import GenerationMode, GenerationParameters, GenerationResult, RoadStyle
from .road_network import RoadNetwork, RoadNetworkMode, build_network_data, find_components
from .board_generator import BoardGenerator, GenerationCancelled, GenerationStage, generate_board

__all__ = ['LcgPRNG', 'Cell', 'GenerationMode', 'GenerationParameters', 'GenerationResult',
           'RoadStyle', 'RoadNetwork', 'RoadNetworkMode', 'build_network_data', 'find_components',
           'BoardGenerator', 'GenerationCancelled', 'GenerationStage', 'generate_board']
