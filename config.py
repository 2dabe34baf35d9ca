#config.py
# default config dict for a session. main.py overlays the command line arguments on a copy of it.
DEFAULTS = {
    'input_size': 28 * 28,     # pixels of an MNIST image
    'hidden_size': 25,         # units in the hidden layer
    'output_size': 10,         # digits 0-9
    'minimizer': 'batch',      # 'batch' for batch gradient descent, 'cg' for conjugate gradient
    'alpha': 0.1,              # learning rate, batch gradient descent only
    'lambda': 1.0,             # L2 regularization strength, biases are never regularized
    'epochs': 10,              # batch: epochs. cg: line searches if > 0, cost evaluations if < 0
    'seed': None,              # seed of the random initial weights. None for a different run every time
    'init_range': (-1., 1.),   # initial weights are uniform in this range
    'mnist_dir': 'mnist',      # directory with the gzipped MNIST archive files
    'download': False,         # fetch MNIST through torchvision when mnist_dir doesn't exist
    'data_root': './data',     # where torchvision keeps its download
    'weights_dir': '.',        # where weights_<i>.matrix, a0.matrix and y.matrix are kept
    'plot_dir': 'automatic_figs',
}
