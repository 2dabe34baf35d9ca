#main.py
"""
Digit recognition on the MNIST database with a one hidden layer network.

    python main.py [--download] train [--minimizer batch|cg] [--alpha A] [--lambda L] [--epochs N] [--seed S] [--plot]
    python main.py predict <index of an image in the test set>
    python main.py test
"""

import argparse
import sys
from config import DEFAULTS
from trainer import Trainer, load_or_init_weights, read_items
from utils.plots import plot_costs, save_fig_with_cfg

class ArgumentParser(argparse.ArgumentParser):
    """Raises ValueError on invalid arguments instead of exiting, so main() reports them like every other error."""
    def error(self, message):
        raise ValueError(f'invalid arguments: {message}')

def parse_args(argv: [str] = None) -> argparse.Namespace:
    parser = ArgumentParser(description='Gradient descent using the MNIST database')
    parser.add_argument('--mnist-dir', default=DEFAULTS['mnist_dir'], help='directory with the gzipped MNIST files')
    parser.add_argument('--weights-dir', default=DEFAULTS['weights_dir'], help='directory of the saved weights and training matrices')
    parser.add_argument('--download', action='store_true', help='download MNIST through torchvision if --mnist-dir does not exist')
    parser.add_argument('--data-root', default=DEFAULTS['data_root'], help='download directory of torchvision')
    parser.add_argument('--seed', type=int, default=DEFAULTS['seed'], help='seed of the random initial weights')
    parser.add_argument('--quiet', action='store_true', help='no progress bars')
    commands = parser.add_subparsers(dest='op', required=True, parser_class=ArgumentParser)

    train = commands.add_parser('train', help='train the network and save the weights')
    train.add_argument('--minimizer', choices=['batch', 'cg'], default=DEFAULTS['minimizer'])
    train.add_argument('--alpha', type=float, default=DEFAULTS['alpha'], help='learning rate of batch gradient descent')
    train.add_argument('--lambda', dest='lambda_', type=float, default=DEFAULTS['lambda'], help='regularization strength')
    train.add_argument('--epochs', type=int, default=DEFAULTS['epochs'])
    train.add_argument('--plot', action='store_true', help='save the cost curve as SVG')

    predict = commands.add_parser('predict', help='predict one image of the test set')
    predict.add_argument('index', type=int)

    commands.add_parser('test', help='classify the whole test set and report the accuracy')

    return parser.parse_args(argv)

def build_config(args: argparse.Namespace) -> dict:
    cfg = dict(DEFAULTS)
    cfg.update({
        'op': args.op,
        'mnist_dir': args.mnist_dir,
        'weights_dir': args.weights_dir,
        'download': args.download,
        'data_root': args.data_root,
        'seed': args.seed,
        'progress': not args.quiet,
    })
    if args.op == 'train':
        cfg.update({'minimizer': args.minimizer, 'alpha': args.alpha, 'lambda': args.lambda_, 'epochs': args.epochs, 'plot': args.plot})
    if args.op == 'predict':
        cfg['index'] = args.index
    return cfg

def layer_sizes(cfg: dict) -> [int]:
    return [cfg['input_size'], cfg['hidden_size'], cfg['output_size']]

def train(cfg: dict) -> None:
    weights = load_or_init_weights(layer_sizes(cfg), cfg['weights_dir'], cfg['seed'], *cfg['init_range'])
    trainer = Trainer.for_training(weights, cfg, progress=cfg['progress'])
    if cfg['minimizer'] == 'cg':
        trainer.train_conjugate_gradient(cfg['lambda'], cfg['epochs'])
    else:
        trainer.train_batch_descent(cfg['alpha'], cfg['lambda'], cfg['epochs'])

    if cfg['plot']:
        fig = plot_costs(trainer.minimizer.history(), f'{trainer.descr} network')
        print(f"Cost curve saved to {save_fig_with_cfg(cfg['plot_dir'], fig, cfg)}")

def evaluate(cfg: dict) -> None:
    weights = load_or_init_weights(layer_sizes(cfg), cfg['weights_dir'], cfg['seed'], *cfg['init_range'])
    trainer = Trainer(weights, progress=cfg['progress'])
    test_set = read_items(cfg, train=False)

    if cfg['op'] == 'predict':
        index = cfg['index']
        if not 0 <= index < len(test_set):
            raise ValueError(f"The item of the test set to predict must be in the range 0-{len(test_set) - 1}, got {index}.")
        item = test_set[index]
        print(f'expected output: {item.label}')
        print(f'predicted value: {trainer.predict(item)}')
    else:
        correct, total = trainer.evaluate(test_set)
        if total == 0:
            raise ValueError('The test set is empty.')
        print(f'# of correctly classified images: {correct} over {total} taken from the test set ({correct / total:.2%})')

def main(argv: [str] = None) -> int:
    print('Gradient descent using the MNIST database')
    try:
        cfg = build_config(parse_args(argv))
        if cfg['op'] == 'train':
            train(cfg)
        else:
            evaluate(cfg)
    except (ValueError, FileNotFoundError) as e:
        print(e, file=sys.stderr)
        return 1
    return 0

if __name__ == '__main__':
    sys.exit(main())
