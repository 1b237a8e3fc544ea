from decimal import Decimal

from django import forms

from finance.models import PaymentMethod
from .models import AccessDevelopment, DevelopmentLead, QuoteConfig

_INPUT = {"class": "input input-bordered w-full"}
_SELECT = {"class": "select select-bordered w-full"}
_TEXTAREA = {"class": "textarea textarea-bordered w-full", "rows": 3}
_CHECKBOX = {"class": "checkbox"}


class DevelopmentForm(forms.ModelForm):
    # Fijos una vez creado el contrato: el cronograma ya está anclado a ellos
    LOCKED_ON_EDIT = ("contract_start_date", "payment_day", "service_day")
    FIELDSETS = (
        ("Datos generales", ("name", "address", "contact_name", "contact_phone", "contact_email")),
        ("Contrato", (
            "contract_start_date",
            "contract_duration_months",
            "monthly_payment",
            "payment_day",
            "service_day",
            "auto_generate_orders",
        )),
        ("Inversionista", (
            "has_investor",
            "investor_name",
            "investor_amount",
            "investor_profit_percent",
            "investor_account_type",
        )),
    )

    class Meta:
        model = AccessDevelopment
        fields = [
            "name",
            "address",
            "contact_name",
            "contact_phone",
            "contact_email",
            "contract_start_date",
            "contract_duration_months",
            "monthly_payment",
            "payment_day",
            "service_day",
            "auto_generate_orders",
            "has_investor",
            "investor_name",
            "investor_amount",
            "investor_profit_percent",
            "investor_account_type",
            "notes",
        ]
        widgets = {
            "name": forms.TextInput(attrs=_INPUT),
            "address": forms.TextInput(attrs=_INPUT),
            "contact_name": forms.TextInput(attrs=_INPUT),
            "contact_phone": forms.TextInput(attrs=_INPUT),
            "contact_email": forms.EmailInput(attrs=_INPUT),
            "contract_start_date": forms.DateInput(attrs={**_INPUT, "type": "date"}, format="%Y-%m-%d"),
            "contract_duration_months": forms.NumberInput(attrs={**_INPUT, "min": 1}),
            "monthly_payment": forms.NumberInput(attrs={**_INPUT, "step": "0.01", "min": "0"}),
            "payment_day": forms.NumberInput(attrs={**_INPUT, "min": 1, "max": 28}),
            "service_day": forms.NumberInput(attrs={**_INPUT, "min": 1, "max": 28}),
            "auto_generate_orders": forms.CheckboxInput(attrs=_CHECKBOX),
            "has_investor": forms.CheckboxInput(attrs=_CHECKBOX),
            "investor_name": forms.TextInput(attrs=_INPUT),
            "investor_amount": forms.NumberInput(attrs={**_INPUT, "step": "0.01", "min": "0"}),
            "investor_profit_percent": forms.NumberInput(attrs={**_INPUT, "step": "0.01", "min": "0", "max": "100"}),
            "investor_account_type": forms.Select(attrs=_SELECT),
            "notes": forms.Textarea(attrs=_TEXTAREA),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["investor_amount"].required = False
        self.fields["investor_profit_percent"].required = False
        if self.instance.pk:
            for name in self.LOCKED_ON_EDIT:
                self.fields[name].disabled = True

    def fieldsets(self):
        return [(title, [self[name] for name in names]) for title, names in self.FIELDSETS]

    def clean_monthly_payment(self):
        value = self.cleaned_data.get("monthly_payment")
        if value is None or value <= 0:
            raise forms.ValidationError("La mensualidad debe ser mayor a cero.")
        return value

    def clean_contract_duration_months(self):
        value = self.cleaned_data.get("contract_duration_months")
        if self.instance.pk and value is not None and value < self.instance.contract_duration_months:
            raise forms.ValidationError("La duración de un contrato existente solo puede ampliarse.")
        return value

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("has_investor"):
            amount = cleaned.get("investor_amount") or Decimal("0")
            profit = cleaned.get("investor_profit_percent") or Decimal("0")
            if not cleaned.get("investor_name"):
                self.add_error("investor_name", "Indica el nombre del inversionista.")
            if amount <= 0:
                self.add_error("investor_amount", "El monto de inversión debe ser mayor a cero.")
            if not (0 <= profit <= 100):
                self.add_error("investor_profit_percent", "El porcentaje debe estar entre 0 y 100.")
            cleaned["investor_amount"] = amount
            cleaned["investor_profit_percent"] = profit
        else:
            cleaned["investor_name"] = ""
            cleaned["investor_amount"] = Decimal("0")
            cleaned["investor_profit_percent"] = Decimal("0")
        return cleaned


class DevelopmentStatusForm(forms.Form):
    status = forms.ChoiceField(
        label="Estado",
        choices=AccessDevelopment.Status.choices,
        widget=forms.Select(attrs=_SELECT),
    )


class PaymentRegisterForm(forms.Form):
    payment_method = forms.ChoiceField(
        label="Forma de pago",
        choices=PaymentMethod.choices,
        widget=forms.Select(attrs=_SELECT),
    )
    payment_reference = forms.CharField(
        label="Referencia",
        max_length=100,
        required=False,
        widget=forms.TextInput(attrs=_INPUT),
    )
    evidence = forms.FileField(
        label="Comprobante",
        required=False,
        widget=forms.ClearableFileInput(attrs={"class": "file-input file-input-bordered w-full"}),
    )


class LeadForm(forms.ModelForm):
    comment = forms.CharField(
        label="Comentario",
        required=False,
        widget=forms.Textarea(attrs=_TEXTAREA),
    )

    class Meta:
        model = DevelopmentLead
        fields = [
            "name",
            "address",
            "contact_name",
            "contact_phone",
            "contact_email",
            "monthly_payment_proposed",
            "status",
            "reminder_date",
            "has_investor",
            "investor_name",
            "investor_amount",
        ]
        widgets = {
            "name": forms.TextInput(attrs=_INPUT),
            "address": forms.TextInput(attrs=_INPUT),
            "contact_name": forms.TextInput(attrs=_INPUT),
            "contact_phone": forms.TextInput(attrs=_INPUT),
            "contact_email": forms.EmailInput(attrs=_INPUT),
            "monthly_payment_proposed": forms.NumberInput(attrs={**_INPUT, "step": "0.01", "min": "0"}),
            "status": forms.Select(attrs=_SELECT),
            "reminder_date": forms.DateInput(attrs={**_INPUT, "type": "date"}, format="%Y-%m-%d"),
            "has_investor": forms.CheckboxInput(attrs=_CHECKBOX),
            "investor_name": forms.TextInput(attrs=_INPUT),
            "investor_amount": forms.NumberInput(attrs={**_INPUT, "step": "0.01", "min": "0"}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk:
            self.fields["comment"].initial = self.instance.comments

    def changed_comment(self):
        """Comentario a agregar al historial: solo si cambió respecto al último."""
        comment = (self.cleaned_data.get("comment") or "").strip()
        if comment and comment != (self.instance.comments or "").strip():
            return comment
        return ""


class LeadCommentForm(forms.Form):
    comment = forms.CharField(
        label="Comentario",
        widget=forms.Textarea(attrs={**_TEXTAREA, "rows": 2, "placeholder": "Escribe un comentario..."}),
    )


class QuoteForm(forms.Form):
    name = forms.CharField(label="Fraccionamiento", max_length=200, widget=forms.TextInput(attrs=_INPUT))
    address = forms.CharField(label="Dirección", max_length=255, required=False, widget=forms.TextInput(attrs=_INPUT))
    contact_name = forms.CharField(label="Contacto", max_length=150, required=False, widget=forms.TextInput(attrs=_INPUT))
    contact_phone = forms.CharField(label="Teléfono", max_length=20, required=False, widget=forms.TextInput(attrs=_INPUT))
    contact_email = forms.EmailField(label="Correo", required=False, widget=forms.EmailInput(attrs=_INPUT))
    vehicular_gates_single = forms.IntegerField(
        label="Portones vehiculares sencillos", min_value=0, initial=0, widget=forms.NumberInput(attrs=_INPUT)
    )
    vehicular_gates_double = forms.IntegerField(
        label="Portones vehiculares dobles", min_value=0, initial=0, widget=forms.NumberInput(attrs=_INPUT)
    )
    pedestrian_doors = forms.IntegerField(
        label="Puertas peatonales", min_value=0, initial=0, widget=forms.NumberInput(attrs=_INPUT)
    )
    controlled_exits = forms.IntegerField(
        label="Salidas controladas", min_value=0, initial=0, widget=forms.NumberInput(attrs=_INPUT)
    )
    num_houses = forms.IntegerField(
        label="Número de casas", min_value=0, initial=0, widget=forms.NumberInput(attrs=_INPUT)
    )

    CONTACT_FIELDS = ("name", "address", "contact_name", "contact_phone", "contact_email")

    @classmethod
    def initial_from_lead(cls, lead):
        return {
            name: getattr(lead, name)
            for name in cls.CONTACT_FIELDS + (
                "vehicular_gates_single",
                "vehicular_gates_double",
                "pedestrian_doors",
                "controlled_exits",
                "num_houses",
            )
        }

    def contact_data(self):
        return {name: self.cleaned_data.get(name) or "" for name in self.CONTACT_FIELDS}


class QuoteConfigForm(forms.Form):
    """Un campo por cada precio configurado del cotizador."""

    def __init__(self, *args, configs=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.configs = list(configs if configs is not None else QuoteConfig.objects.all())
        for config in self.configs:
            self.fields[config.key] = forms.DecimalField(
                label=config.label,
                help_text=config.description,
                initial=config.value,
                min_value=0,
                max_value=100 if config.is_percentage else None,
                decimal_places=2,
                widget=forms.NumberInput(attrs={**_INPUT, "step": "0.01"}),
            )

    def save(self):
        changed = []
        for config in self.configs:
            value = self.cleaned_data[config.key]
            if value != config.value:
                config.value = value
                changed.append(config)
        QuoteConfig.objects.bulk_update(changed, ["value"])
        return changed
