import psutil
import torch
from time import perf_counter
from contextlib import contextmanager

"""
Measure the time and memory usage of a block of code, e.g. a training run.
"""

def memory_usage() -> dict:
    """RAM (and GPU memory, if there is one) in GB"""
    usage = {
        'ram used ': psutil.virtual_memory().used / 1e9,
        'ram avail': psutil.virtual_memory().available / 1e9,
        'process  ': psutil.Process().memory_info().rss / 1e9,
    }
    if torch.cuda.is_available():
        usage['gpu alloc'] = torch.cuda.memory_allocated() / 1e9
    return usage

@contextmanager
def profiler(description: str, length: int = 80, pad_char: str = ':', enabled: bool = True) -> dict:
    """
    Prints a banner with the memory usage before the block, and the time and memory difference after it.
    Yields a dict that is filled with 'seconds' and the memory differences once the block is done.
    """
    stats = {}
    before = memory_usage()
    if enabled:
        print('\n' + description.center(length, pad_char))
        print(' | '.join(f'{k}: {v:6.1f}' for k, v in before.items()))
    start = perf_counter()
    try:
        yield stats
    finally:
        stats['seconds'] = perf_counter() - start
        after = memory_usage()
        stats.update({k.strip(): after[k] - v for k, v in before.items()})
        if enabled:
            # the memory differences with a '+' or '-' sign
            print(' | '.join(f'{k}: {after[k] - v:+6.1f}' for k, v in before.items()))
            print(f'{stats["seconds"]:.2f} s for {description}'.center(length, pad_char))
