# test_trainer.py
import pytest
import numpy as np
from matrix import Matrix
from mnist_reader import MNISTItem
from minimizer import Termination
from batch_descent import BatchDescent
from conjugate_gradient import ConjugateGradient
from errors import ConfigurationError
from trainer import Trainer, validate, init_weights, load_or_init_weights, prepare_training_matrices, read_items
from network_computer import NetworkComputer
from config import DEFAULTS
import persistence

def two_pixel_items():
    """2x1 images: a bright left pixel is a 0, a bright right pixel is a 1"""
    return [MNISTItem([200, 10], 0, 2, 1), MNISTItem([10, 220], 1, 2, 1),
            MNISTItem([180, 30], 0, 2, 1), MNISTItem([20, 250], 1, 2, 1)]

@pytest.fixture
def training_set():
    return prepare_training_matrices(two_pixel_items(), input_size=2, output_size=2, pixel_scale=1 / 255)

def test_prepare_training_matrices():
    a0, y = prepare_training_matrices(two_pixel_items(), input_size=2, output_size=2)
    assert a0.shape == (4, 3) and y.shape == (4, 2)
    assert a0.to_list()[1] == [1., 10., 220.], "The bias column or the raw pixels are wrong."
    assert y.to_list() == [[1., 0.], [0., 1.], [1., 0.], [0., 1.]]

    with pytest.raises(ConfigurationError):
        prepare_training_matrices(two_pixel_items(), input_size=3, output_size=2)
    # label 1 doesn't fit a single class
    with pytest.raises(ConfigurationError):
        prepare_training_matrices(two_pixel_items(), input_size=2, output_size=1)
    with pytest.raises(ValueError):
        prepare_training_matrices([], input_size=2, output_size=2)

def test_init_weights():
    weights = init_weights([4, 3, 2], seed=5)
    assert [w.shape for w in weights] == [(3, 5), (2, 4)]
    again = init_weights([4, 3, 2], seed=5)
    assert all(w.equal(a, tol=0.) for w, a in zip(weights, again)), "The same seed gave different weights."
    other = init_weights([4, 3, 2], seed=6)
    assert not weights[0].equal(other[0])

def test_load_or_init_weights(tmp_path):
    with pytest.warns(UserWarning):
        weights = load_or_init_weights([4, 3, 2], str(tmp_path), seed=1)
    assert [w.shape for w in weights] == [(3, 5), (2, 4)]

    persistence.save_weights(weights, str(tmp_path))
    loaded = load_or_init_weights([4, 3, 2], str(tmp_path), seed=2)
    assert all(l.equal(w, tol=0.) for l, w in zip(loaded, weights)), "Saved weights were not loaded."

def test_validate_names_the_layer():
    a0 = Matrix([[1., 0.5, 0.5]])
    y = Matrix([[1., 0.]])
    # layer 1 expects 4 hidden units, layer 0 has 3
    computer = NetworkComputer([Matrix.zeros(3, 3), Matrix.zeros(2, 5)], a0, y)
    with pytest.raises(ConfigurationError, match='layer 1'):
        validate(computer)

    computer = NetworkComputer([Matrix.zeros(3, 4), Matrix.zeros(2, 4)], a0, y)
    with pytest.raises(ConfigurationError, match='input'):
        validate(computer)

    computer = NetworkComputer([Matrix.zeros(3, 3), Matrix.zeros(3, 4)], a0, y)
    with pytest.raises(ConfigurationError, match='output'):
        validate(computer)

    computer = NetworkComputer([Matrix.zeros(3, 3), Matrix.zeros(2, 4)], a0, Matrix([[1., 0.], [0., 1.]]))
    with pytest.raises(ConfigurationError, match='examples'):
        validate(computer)

def test_invalid_inputs(training_set):
    a0, y = training_set
    weights = init_weights([2, 3, 2], seed=0)
    with pytest.raises(TypeError):
        Trainer(weights[0], a0, y, progress=False)
    with pytest.raises(TypeError):
        Trainer(weights, a0.numpy(), y, progress=False)
    with pytest.raises(ValueError):
        Trainer(weights, a0, progress=False)
    with pytest.raises(ConfigurationError):
        Trainer(init_weights([3, 3, 2], seed=0), a0, y, progress=False)

def test_train_and_predict(training_set, tmp_path):
    a0, y = training_set
    trainer = Trainer(init_weights([2, 3, 2], seed=3), a0, y, lambda_=0., save_dir=str(tmp_path),
                      pixel_scale=1 / 255, progress=False)
    assert trainer.descr == '2 -> 3 -> 2'

    termination = trainer.train_conjugate_gradient(lambda_=0., max_epoch=50)
    assert isinstance(trainer.minimizer, ConjugateGradient)
    assert termination in tuple(Termination)

    assert trainer.predict(MNISTItem([240, 0], 0, 2, 1)) == 0
    assert trainer.predict([0, 240]) == 1
    assert trainer.predict_all(np.array([[255., 0.], [0., 255.]])) == [0, 1]
    assert trainer.evaluate(two_pixel_items()) == (4, 4)
    assert trainer.evaluate([]) == (0, 0)

    # the session was saved
    assert persistence.training_set_cached(str(tmp_path))
    saved = persistence.load_weights(2, str(tmp_path))
    assert all(s.equal(w, tol=0.) for s, w in zip(saved, trainer.weights()))

def test_train_batch_descent(training_set):
    a0, y = training_set
    trainer = Trainer(init_weights([2, 3, 2], seed=3), a0, y, progress=False)
    trainer.train_batch_descent(alpha=0.5, lambda_=0.1, max_epoch=5)
    assert isinstance(trainer.minimizer, BatchDescent)
    assert trainer.computer.lambda_ == 0.1
    assert 1 <= len(trainer.minimizer.costs) <= 5

    with pytest.raises(ValueError):
        trainer.train_batch_descent(alpha=0.5, lambda_=-1., max_epoch=5)

def test_train_without_training_set():
    trainer = Trainer(init_weights([2, 3, 2], seed=3), progress=False)
    with pytest.raises(ConfigurationError):
        trainer.train_batch_descent(alpha=0.1, lambda_=0., max_epoch=1)

def test_for_training_uses_cached_matrices(training_set, tmp_path):
    a0, y = training_set
    weights = init_weights([2, 3, 2], seed=3)
    persistence.save_session(weights, a0, y, str(tmp_path), pixel_scale=1 / 255)

    cfg = dict(DEFAULTS, input_size=2, hidden_size=3, output_size=2,
               weights_dir=str(tmp_path), mnist_dir=str(tmp_path / 'no_mnist_here'))
    cfg['lambda'] = 0.5
    trainer = Trainer.for_training(weights, cfg, pixel_scale=1 / 255, progress=False)
    assert trainer.computer.get_a0().equal(a0, tol=0.)
    assert trainer.computer.lambda_ == 0.5
    assert trainer.save_dir == str(tmp_path)

    # cached matrices of the wrong size
    cfg['input_size'] = 5
    with pytest.raises(ConfigurationError):
        Trainer.for_training(init_weights([5, 3, 2], seed=3), cfg, pixel_scale=1 / 255, progress=False)

def test_for_training_without_data(tmp_path):
    cfg = dict(DEFAULTS, weights_dir=str(tmp_path), mnist_dir=str(tmp_path / 'no_mnist_here'))
    with pytest.raises(FileNotFoundError):
        Trainer.for_training(init_weights([784, 25, 10], seed=0), cfg, progress=False)

def test_cached_pixel_scale_must_match(tmp_path):
    # a session trained on raw pixels
    a0, y = prepare_training_matrices(two_pixel_items(), input_size=2, output_size=2)
    raw = Trainer(init_weights([2, 3, 2], seed=3), a0, y, save_dir=str(tmp_path), progress=False)
    raw.save(str(tmp_path))

    cfg = dict(DEFAULTS, input_size=2, hidden_size=3, output_size=2,
               weights_dir=str(tmp_path), mnist_dir=str(tmp_path / 'no_mnist_here'))
    with pytest.raises(ConfigurationError, match='pixel scale'):
        Trainer.for_training(raw.weights(), cfg, pixel_scale=1 / 255, progress=False)

    # the same scale is accepted, and prediction scales its input the way A0 was built
    trainer = Trainer.for_training(raw.weights(), cfg, progress=False)
    assert trainer.pixel_scale == 1.
    assert trainer.computer.get_a0().to_list()[0] == [1., 200., 10.]

def test_saved_session_remembers_pixel_scale(training_set, tmp_path):
    a0, y = training_set
    trainer = Trainer(init_weights([2, 3, 2], seed=3), a0, y, pixel_scale=1 / 255, progress=False)
    trainer.save(str(tmp_path))
    assert persistence.load_training_set(str(tmp_path))[2] == 1 / 255

def test_read_items_downloads_when_asked(fake_mnist, tmp_path):
    cfg = dict(DEFAULTS, mnist_dir=str(tmp_path / 'no_mnist_here'), download=True, data_root=str(tmp_path / 'data'))
    items = read_items(cfg, train=False)
    assert fake_mnist.calls == [(str(tmp_path / 'data'), False, True)]
    assert [item.label for item in items] == [0, 1, 2, 3, 4, 5]

    # without download the missing archive is an error, and torchvision isn't asked
    cfg['download'] = False
    with pytest.raises(FileNotFoundError):
        read_items(cfg)
    assert len(fake_mnist.calls) == 1

def test_for_training_downloads(fake_mnist, tmp_path):
    cfg = dict(DEFAULTS, weights_dir=str(tmp_path), mnist_dir=str(tmp_path / 'no_mnist_here'),
               download=True, data_root=str(tmp_path / 'data'))
    trainer = Trainer.for_training(init_weights([784, 25, 10], seed=0), cfg, pixel_scale=1 / 255, progress=False)
    assert fake_mnist.calls[0][1] is True, "The training set was not requested."
    assert trainer.computer.get_a0().shape == (6, 785)
    assert trainer.computer.get_a0().numpy()[:, 1:].max() <= 1.
