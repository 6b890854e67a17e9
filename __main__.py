import pulumi
from eksgraph.config import load_config
from eksgraph.engine import PulumiEngine
from eksgraph.stack import StackAssembler

def main():
    # Load YAML configuration, layered with config.<stack>.yaml when present
    config = load_config("config.yaml", overlay_path=f"config.{pulumi.get_stack()}.yaml")

    try:
        build = StackAssembler(config).build()
    except Exception as e:
        pulumi.log.error(f"Failed to assemble resource graph: {e}")
        raise

    pulumi.log.info(f"Execution plan:\n{build.plan.dump()}")

    engine = PulumiEngine(config)
    try:
        engine.apply(build)
    except Exception as e:
        pulumi.log.error(f"Failed during resource build: {e}")
        raise

    # Export subnet ids and cluster outputs
    engine.export_outputs(build)

if __name__ == "__main__":
    main()
