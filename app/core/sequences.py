def next_sequence_number(queryset, field: str, prefix: str, width: int = 6) -> str:
    """
    Siguiente consecutivo para números tipo PREFIJO-000001.
    Los números se rellenan con ceros, así que el orden alfabético coincide con el numérico.
    """
    last = (
        queryset.filter(**{f"{field}__startswith": prefix})
        .order_by(f"-{field}")
        .values_list(field, flat=True)
        .first()
    )
    seq = int(last[len(prefix):]) + 1 if last else 1
    return f"{prefix}{seq:0{width}d}"
