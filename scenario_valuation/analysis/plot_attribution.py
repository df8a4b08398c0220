'''
Waterfall chart of a scenario attribution.

Bars walk from the baseline total through each parameter's isolated
contribution and the residual to the variant total.

Usage:
  from scenario_valuation.analysis.plot_attribution import (
      plot_attribution_waterfall)

  plot_attribution_waterfall(report, Path('charts/attribution.png'))
'''

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import matplotlib

matplotlib.use('Agg')
import matplotlib.pyplot as plt  # pylint: disable=wrong-import-position

if TYPE_CHECKING:
  from scenario_valuation.analysis.attribution import AttributionReport

logger = logging.getLogger(__name__)


def waterfall_steps(report: 'AttributionReport') -> List[dict]:
  '''
  Compute bar geometry for the waterfall.

  Returns:
    List of {'label', 'bottom', 'height', 'kind'} dicts where kind is
    'total', 'increase' or 'decrease'
  '''
  steps = [{
      'label': 'baseline',
      'bottom': 0.0,
      'height': report.baseline_total,
      'kind': 'total',
  }]

  running = report.baseline_total
  labelled = [(e.key, e.contribution) for e in report.entries]
  labelled.append(('residual', report.residual))

  for label, amount in labelled:
    steps.append({
        'label': label,
        'bottom': running,
        'height': amount,
        'kind': 'increase' if amount >= 0 else 'decrease',
    })
    running += amount

  steps.append({
      'label': 'variant',
      'bottom': 0.0,
      'height': report.variant_total,
      'kind': 'total',
  })
  return steps


def plot_attribution_waterfall(
    report: 'AttributionReport',
    output_path: Path,
    title: Optional[str] = None,
) -> Path:
  '''Render the attribution waterfall to a PNG file.'''
  steps = waterfall_steps(report)
  colors = {'total': 'steelblue', 'increase': 'seagreen', 'decrease': 'firebrick'}

  _, ax = plt.subplots(figsize=(max(8, 1.2 * len(steps)), 6))

  for i, step in enumerate(steps):
    ax.bar(i,
           step['height'],
           bottom=step['bottom'],
           color=colors[step['kind']],
           alpha=0.85,
           edgecolor='black',
           linewidth=0.5)

  ax.set_xticks(range(len(steps)))
  ax.set_xticklabels([s['label'] for s in steps], rotation=30, ha='right')
  ax.set_ylabel('Total Valuation', fontsize=12, fontweight='bold')
  ax.set_title(title or 'Scenario Attribution',
               fontsize=14,
               fontweight='bold',
               pad=20)
  ax.grid(True, axis='y', alpha=0.3, linestyle='--')

  plt.tight_layout()

  output_path.parent.mkdir(parents=True, exist_ok=True)
  plt.savefig(output_path, dpi=150, bbox_inches='tight')
  logger.info('Saved: %s', output_path)

  plt.close()
  return output_path
