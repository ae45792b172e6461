"""
Scoring engine layer — the external collaborator that turns a feature matrix
into per-row scores.

Modules
-------
base          : ScoringEngine ABC (initialize, load_dataset, run_inference, dispose).
fm_model      : FactorizationMachine parameter artifact (joblib) + numpy scoring.
native        : NativeFMEngine — in-process backend over a FactorizationMachine.
xlearn_engine : XLearnEngine — optional backend driving the xlearn package.
factory       : create_engine() — backend name → engine instance.
handle        : EngineHandle + initialize_engine() / dispose_engine().
command       : run_engine_command() — train/predict pass-through to xLearn binaries.
"""
