"""
Reporting module for California local regression analysis.
"""
from .output_manager import OutputManager, NumpyEncoder
from .tables import create_ols_table, create_model_comparison_table
from .exporters import export_analysis, export_figures, summarize_results

__all__ = [
    'OutputManager', 'NumpyEncoder',
    'create_ols_table', 'create_model_comparison_table',
    'export_analysis', 'export_figures', 'summarize_results'
]
