"""
cli.py
~~~~~~

Command line driver that trains a network on PGM digit images and
reports its accuracy after every epoch.

Usage::

    mlpnet <ImgPath> [#Train] [#Epochs] [TrainSetList] [TestSetList]
    mlpnet data --layers 784 30 10 --init random --seed 1 --save net.txt
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from mlpnet import trainer
from mlpnet.model_persistence import DEFAULT_MODEL_DIR, save_network
from mlpnet.network import DEFAULT_LEARNING_RATE, INIT_MODES, NeuralNet

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """
    Set up logging from the environment.

    LOG_LEVEL picks the level (default INFO).
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='mlpnet',
        description="Train and assess a sigmoid MLP on PGM digit images.",
    )
    parser.add_argument('img_path',
                        help="Directory holding training and testing images.")
    parser.add_argument('train_count', nargs='?', type=int, default=5000,
                        help="Number of training images per epoch.")
    parser.add_argument('epochs', nargs='?', type=int, default=10,
                        help="Number of epochs.")
    parser.add_argument('train_list', nargs='?',
                        default=trainer.DEFAULT_TRAIN_LIST,
                        help="File listing the training images.")
    parser.add_argument('test_list', nargs='?',
                        default=trainer.DEFAULT_TEST_LIST,
                        help="File listing the testing images.")
    parser.add_argument('--layers', type=int, nargs='+', default=[784, 30, 10],
                        help="Layer sizes, input first and output last.")
    parser.add_argument('--learning-rate', type=float,
                        default=DEFAULT_LEARNING_RATE,
                        help="Learning rate used for every update.")
    parser.add_argument('--init', choices=INIT_MODES, default='zero',
                        help="Initial weight and bias values.")
    parser.add_argument('--seed', type=int, default=None,
                        help="Seed for random initialization and shuffling "
                             "(shuffling uses a fixed seed when omitted).")
    parser.add_argument('--load', metavar='FILE',
                        help="Continue training a network saved with --save.")
    parser.add_argument('--save', metavar='FILE',
                        help="Write the trained network to a text file.")
    parser.add_argument('--store-id', metavar='ID',
                        help="Store the trained network in the model database.")
    parser.add_argument('--model-dir', default=DEFAULT_MODEL_DIR,
                        help="Directory of the model database.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point of the ``mlpnet`` console script.

    Returns:
        Process exit status
    """
    configure_logging()
    args = build_parser().parse_args(argv)

    try:
        if args.load:
            net = NeuralNet.load(args.load)
        else:
            net = NeuralNet(args.layers, init=args.init, seed=args.seed)

        history = trainer.run(
            net,
            args.img_path,
            train_count=args.train_count,
            epochs=args.epochs,
            train_list=args.train_list,
            test_list=args.test_list,
            eta=args.learning_rate,
            seed=(trainer.DEFAULT_SHUFFLE_SEED if args.seed is None
                  else args.seed)
        )

        if args.save:
            net.save(args.save)
        if args.store_id:
            accuracy = history[-1]['accuracy'] if history else None
            if not save_network(net, args.store_id, model_dir=args.model_dir,
                                trained=bool(history), accuracy=accuracy):
                return 1
    except Exception as e:
        logger.exception(f"Training failed: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
