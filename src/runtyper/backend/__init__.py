from .codegen import CodeGenerator, generate

__all__ = ["CodeGenerator", "generate"]
