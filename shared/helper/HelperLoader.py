def load_engine_class(package: str, class_prefix: str, engine: str) -> type:
    """Import <package>.<engine>.<ClassPrefix><Engine> and return the class.

    E.g. ("shared.clients.rag", "RAGClient", "qdrant") loads
    shared.clients.rag.qdrant.RAGClientQdrant.RAGClientQdrant.

    Raises:
        ValueError: If no such module or class exists.
    """
    engine = engine.strip().lower()
    class_name = f"{class_prefix}{engine.capitalize()}"
    try:
        module = __import__(f"{package}.{engine}.{class_name}", fromlist=[class_name])
        return getattr(module, class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Unsupported engine '{engine}' for {class_prefix}: {e}")
