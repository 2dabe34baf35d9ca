import xml.etree.ElementTree as ET
import json
import os
import re
import plotly.graph_objects as go
import pandas as pd
import numpy as np

SVG_NS = 'http://www.w3.org/2000/svg'
XLINK_NS = 'http://www.w3.org/1999/xlink'

def plot_costs(history: pd.DataFrame, description: str) -> go.Figure:
    """
    Takes the cost history of a minimizer (index 'Epoch', column 'Cost')
    and a description of the run, and returns a plotly figure of the training curve.
    Non-finite costs are left out, so a diverging run still gets a readable plot.
    """
    finite = history[np.isfinite(history['Cost'].astype(float))]

    fig = go.Figure(layout={
        'title': f'Training Cost of {description}',
        'template': 'seaborn',
        'height': 600,
        'xaxis': {'title': 'Evaluation'},
        'yaxis': {'title': 'Cost J', 'type': 'log' if (finite['Cost'] > 0).all() else 'linear'},
    })
    fig.add_trace(go.Scatter(
        x=finite.index,
        y=finite['Cost'],
        mode='lines+markers',
        name='J'
    ))
    # mark the lowest cost reached
    if len(finite):
        best = finite['Cost'].idxmin()
        fig.add_trace(go.Scatter(
            x=[best],
            y=[finite.loc[best, 'Cost']],
            mode='markers',
            marker={'size': 12, 'symbol': 'star'},
            name='lowest'
        ))
    return fig

def save_fig_with_cfg(dir: str, fig: go.Figure, config: dict) -> str:
    """
    Render a figure to SVG in dir and store the run configuration in its <metadata> element,
    so every saved cost curve says which settings produced it. Returns the path of the file.
    """
    os.makedirs(dir, exist_ok=True)
    name = re.sub(r'[^\w.-]+', '_', fig.layout.title.text or 'figure')
    path = os.path.join(dir, f'{name}.svg')

    ET.register_namespace('', SVG_NS)
    ET.register_namespace('xlink', XLINK_NS)
    root = ET.fromstring(fig.to_image(format='svg'))
    metadata = ET.Element(f'{{{SVG_NS}}}metadata', {'id': 'run-config'})
    metadata.text = json.dumps(config, indent=2, sort_keys=True, default=str)
    root.insert(0, metadata)
    ET.ElementTree(root).write(path, encoding='utf-8', xml_declaration=True)
    return path

def read_fig_cfg(path: str) -> dict:
    """The configuration stored by save_fig_with_cfg."""
    metadata = ET.parse(path).getroot().find(f'{{{SVG_NS}}}metadata')
    if metadata is None or not metadata.text:
        raise ValueError(f"'{path}' holds no run configuration.")
    return json.loads(metadata.text)
