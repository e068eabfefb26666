from rfx.config import load_config
from rfx.core import ModelInterpreter

config = load_config("rfx_configuration.yaml")

interpreter = ModelInterpreter(config)

# Individual stages can also be called one by one: load_data, filter_features,
# split_data, train_model, build_predictor, interpret, export_plot.
interpreter.run()
