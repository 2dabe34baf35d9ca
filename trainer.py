#trainer.py
"""
Trainer class
Takes   - the weights of the network (loaded from disk or freshly initialised)
        - optionally the training set, as a biased input activation A0 and a one-hot ground truth Y

Builds a NetworkComputer, checks once that all the layer sizes fit together, runs one minimizer,
and saves the result. Afterwards it predicts digits with the trained weights.
"""

import os
import numpy as np
import torch
from warnings import warn
from matrix import Matrix
from network_computer import NetworkComputer
from minimizer import Minimizer, Termination
from batch_descent import BatchDescent
from conjugate_gradient import ConjugateGradient
from mnist_reader import MNISTItem, MNISTReader, from_torchvision
from errors import ConfigurationError, MissingResource
from utils.profiler import profiler
import persistence

def validate(computer: NetworkComputer) -> None:
    """
    Check the weight matrices of every layer against the input, each other, and the output.
    Raises ConfigurationError naming the first layer that doesn't fit.
    """
    weights = computer.weights
    a0, y = computer.activations[0], computer.Y

    prev_rows = a0.cols - 1 if a0 is not None else None
    for i, w in enumerate(weights):
        if w is None:
            raise ConfigurationError(f"Weight matrix for the layer {i} is not defined.")
        if prev_rows is not None and prev_rows + 1 != w.cols:
            what = 'the input vector has' if i == 0 else 'the previous matrix had'
            raise ConfigurationError(f"Weight matrix on layer {i} has wrong size ({w.rows}x{w.cols}), {what} {prev_rows} columns.")
        prev_rows = w.rows

    if y is not None:
        if prev_rows != y.cols:
            last = weights[-1]
            raise ConfigurationError(f"Weight matrix on layer {len(weights) - 1} has wrong size ({last.rows}x{last.cols}), "
                                     f"the output vector has {y.cols} elements.")
        if a0 is not None and a0.rows != y.rows:
            raise ConfigurationError(f"The input has {a0.rows} examples but the ground truth has {y.rows}.")

def init_weights(layer_sizes: [int], seed: int = None, low: float = -1., high: float = 1.) -> [Matrix]:
    """
    Uniform random weights (biases included) for the given layer sizes, e.g. [784, 25, 10].
    The same seed gives the same weights.
    """
    generator = torch.Generator()
    if seed is None:
        generator.seed()
    else:
        generator.manual_seed(seed)
    return [Matrix.random(layer_sizes[i + 1], layer_sizes[i] + 1, low, high, generator) for i in range(len(layer_sizes) - 1)]

def load_or_init_weights(layer_sizes: [int], directory: str = '.', seed: int = None, low: float = -1., high: float = 1.) -> [Matrix]:
    """Load the saved weights, or initialise new ones if they are not there."""
    try:
        return persistence.load_weights(len(layer_sizes) - 1, directory)
    except MissingResource as e:
        warn(f"Weights files not found, initialising new ones. {e}")
        return init_weights(layer_sizes, seed, low, high)

def read_items(cfg: dict, train: bool = True) -> [MNISTItem]:
    """
    The MNIST training (or test) set from the archive in cfg['mnist_dir'].
    With cfg['download'] set and no such directory, torchvision fetches it into cfg['data_root'] instead.
    """
    if cfg.get('download') and not os.path.isdir(cfg['mnist_dir']):
        print(f"'{cfg['mnist_dir']}' not found, getting MNIST through torchvision")
        return from_torchvision(cfg['data_root'], train=train, download=True)
    reader = MNISTReader(cfg['mnist_dir'])
    return reader.read_train_set() if train else reader.read_test_set()

def prepare_training_matrices(items: [MNISTItem], input_size: int, output_size: int, pixel_scale: float = 1.) -> (Matrix, Matrix):
    """
    Turn N labelled images into A0 (N x input_size+1, first column all 1.0) and a one-hot Y (N x output_size).
    """
    if len(items) == 0:
        raise ValueError("Dataset error: no items to train on.")
    if items[0].size() != input_size:
        raise ConfigurationError(f"The input size {input_size} doesn't match the {items[0].size()} pixels of the dataset.")

    pixels = np.stack([item.double_pixels() for item in items]) * pixel_scale
    labels = np.array([item.label for item in items])
    if labels.min() < 0 or labels.max() >= output_size:
        raise ConfigurationError(f"Labels range from {labels.min()} to {labels.max()}, the output has {output_size} classes.")

    y = np.zeros((len(items), output_size))
    y[np.arange(len(items)), labels] = 1.
    return Matrix(pixels).prepend_column(1.), Matrix(y)

class Trainer:
    """
    Trains a feed forward network and predicts with it.

    Attributes:
        computer (NetworkComputer): Holds the weights, the training set and lambda.
        minimizer (Minimizer): The minimizer of the last training run, None before the first run.
        save_dir (str): Where the session is saved after training. None to not save.
        pixel_scale (float): Factor applied to the raw pixels, in training and in prediction alike.
        progress (bool): Show progress bars and status lines.
    """
    def __init__(
        self,
        weights: [Matrix],
        a0: Matrix = None,
        y: Matrix = None,
        lambda_: float = 1.,
        save_dir: str = None,
        pixel_scale: float = 1.,
        progress: bool = True,
    ) -> None:
        self._validate_inputs(weights, a0, y)
        self.computer = NetworkComputer(weights, a0, y, lambda_)
        validate(self.computer)

        self.minimizer = None
        self.save_dir = save_dir
        self.pixel_scale = pixel_scale
        self.progress = progress

        sizes = [weights[0].cols - 1] + [w.rows for w in weights]
        self.descr = ' -> '.join(str(s) for s in sizes)
        if progress:
            print(f'Initialised Trainer for a {self.descr} network'
                  + (f' with {a0.rows} training examples' if a0 is not None else ''))

    @staticmethod
    def _validate_inputs(weights, a0, y) -> None:
        if not isinstance(weights, (list, tuple)) or len(weights) == 0:
            raise TypeError(f"Weights error: 'weights' is of type {type(weights)}, expected a non-empty list of Matrix.")
        if not all(isinstance(w, Matrix) for w in weights):
            raise TypeError(f"Weights error: expected Matrix elements, got {[type(w) for w in weights]}.")
        for name, m in (('a0', a0), ('y', y)):
            if m is not None and not isinstance(m, Matrix):
                raise TypeError(f"Data error: '{name}' is of type {type(m)}, expected Matrix.")
        if (a0 is None) != (y is None):
            raise ValueError("Data error: 'a0' and 'y' must be given together.")

    @classmethod
    def for_training(cls, weights: [Matrix], cfg: dict, **kwargs) -> 'Trainer':
        """
        Use the training matrices cached in cfg['weights_dir'] if there are any,
        otherwise read the MNIST training set (see read_items).
        Raises MissingResource if neither is available, and ConfigurationError if the cache
        was built with a different pixel scale than the one asked for.
        """
        input_size, output_size = cfg['input_size'], cfg['output_size']
        pixel_scale = kwargs.get('pixel_scale', 1.)
        if persistence.training_set_cached(cfg['weights_dir']):
            a0, y, cached_scale = persistence.load_training_set(cfg['weights_dir'])
            print('A0 and Y training set matrices loaded')
            if cached_scale != pixel_scale:
                raise ConfigurationError(f"The cached A0 matrix was built with pixel scale {cached_scale}, this session uses {pixel_scale}. "
                                         f"Remove {persistence.A0_FILE} and {persistence.Y_FILE} from '{cfg['weights_dir']}' to rebuild them.")
            if a0.cols != input_size + 1:
                raise ConfigurationError(f"The A0 matrix ({a0.rows}x{a0.cols}) is not compatible with the input size {input_size}.")
            if y.cols != output_size:
                raise ConfigurationError(f"The Y matrix ({y.rows}x{y.cols}) is not compatible with the output size {output_size}.")
        else:
            a0, y = prepare_training_matrices(read_items(cfg, train=True), input_size, output_size, pixel_scale)
        return cls(weights, a0, y, lambda_=cfg['lambda'], save_dir=cfg['weights_dir'], **kwargs)

    # ---------------------------------------------------------------- training

    def train(self, minimizer: Minimizer, lambda_: float = None) -> Termination:
        """
        Run the minimizer on the network. The computer ends up holding the best weights found.
        """
        if self.computer.Y is None:
            raise ConfigurationError("Cannot train without a training set.")
        validate(self.computer)
        if lambda_ is not None:
            if lambda_ < 0:
                raise ValueError(f"Regularization error: lambda must be non-negative, got {lambda_}.")
            self.computer.lambda_ = float(lambda_)

        self.minimizer = minimizer
        with profiler(f'Training {self.descr} with {minimizer.__class__.__name__}', enabled=self.progress):
            termination = minimizer.minimize()
        if self.progress:
            print(f'Training finished: {termination.value}')

        if self.save_dir is not None:
            try:
                self.save(self.save_dir)
            except OSError as e:
                warn(f"Failed to save the session to '{self.save_dir}': {e}")
        return termination

    def train_batch_descent(self, alpha: float, lambda_: float, max_epoch: int) -> Termination:
        return self.train(BatchDescent(self.computer, max_epoch, alpha, progress=self.progress), lambda_)

    def train_conjugate_gradient(self, lambda_: float, max_epoch: int) -> Termination:
        return self.train(ConjugateGradient(self.computer, max_epoch, progress=self.progress), lambda_)

    def save(self, directory: str) -> None:
        validate(self.computer)
        persistence.save_session(self.computer.get_weights(), self.computer.get_a0(), self.computer.get_y(), directory,
                                 pixel_scale=self.pixel_scale)
        if self.progress:
            print(f'Session saved to {directory}')

    def weights(self) -> [Matrix]:
        return self.computer.get_weights()

    # ---------------------------------------------------------------- prediction

    def _as_input(self, pixels) -> Matrix:
        if isinstance(pixels, MNISTItem):
            pixels = pixels.double_pixels()
        x = np.asarray(pixels, dtype=np.float64)
        if x.ndim == 1:
            x = x.reshape(1, -1)
        return Matrix(x * self.pixel_scale)

    def predict_all(self, pixels) -> [int]:
        """The most likely class of every row of raw pixels."""
        # predict() returns one column per example
        p = self.computer.predict(self._as_input(pixels)).numpy()
        return [int(c) for c in p.argmax(axis=0)]

    def predict(self, pixels) -> int:
        """The most likely class of a single image, given as an MNISTItem or its raw pixels."""
        return self.predict_all(pixels)[0]

    def evaluate(self, items: [MNISTItem]) -> (int, int):
        """Number of correctly classified items, and the number of items."""
        if len(items) == 0:
            return 0, 0
        predictions = self.predict_all(np.stack([item.double_pixels() for item in items]))
        correct = sum(int(p == item.label) for p, item in zip(predictions, items))
        return correct, len(items)
