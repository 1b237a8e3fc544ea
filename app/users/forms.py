from django import forms

from .models import User

_INPUT = {"class": "input input-bordered w-full"}
_SELECT = {"class": "select select-bordered w-full"}


class LoginForm(forms.Form):
    identifier = forms.CharField(
        label="Usuario o correo",
        widget=forms.TextInput(attrs={
            **_INPUT,
            "placeholder": "tu_usuario o correo@email.com",
            "autocomplete": "username",
        }),
    )
    password = forms.CharField(
        label="Contraseña",
        widget=forms.PasswordInput(attrs={**_INPUT, "autocomplete": "current-password"}),
    )


class StaffUserForm(forms.ModelForm):
    """Alta y edición de usuarios del staff; la contraseña solo se exige al crear."""

    password_required = True

    password1 = forms.CharField(
        label="Contraseña",
        widget=forms.PasswordInput(attrs={**_INPUT, "autocomplete": "new-password"}),
        required=False,
    )
    password2 = forms.CharField(
        label="Confirmar contraseña",
        widget=forms.PasswordInput(attrs={**_INPUT, "autocomplete": "new-password"}),
        required=False,
    )

    class Meta:
        model = User
        fields = [
            "username",
            "first_name",
            "last_name",
            "email",
            "phone",
            "role",
            "roles",
            "is_active",
        ]
        widgets = {
            "username": forms.TextInput(attrs=_INPUT),
            "first_name": forms.TextInput(attrs=_INPUT),
            "last_name": forms.TextInput(attrs=_INPUT),
            "email": forms.EmailInput(attrs=_INPUT),
            "phone": forms.TextInput(attrs=_INPUT),
            "role": forms.Select(attrs=_SELECT),
            "roles": forms.SelectMultiple(attrs=_SELECT),
            "is_active": forms.CheckboxInput(attrs={"class": "checkbox"}),
        }

    def clean(self):
        cleaned = super().clean()
        password1 = cleaned.get("password1")
        password2 = cleaned.get("password2")
        if self.password_required and not password1:
            self.add_error("password1", "La contraseña es obligatoria.")
        if (password1 or password2) and password1 != password2:
            self.add_error("password2", "Las contraseñas no coinciden.")
        return cleaned

    def save(self, commit=True):
        user = super().save(commit=False)
        password = self.cleaned_data.get("password1")
        if password:
            user.set_password(password)
        if commit:
            user.save()
            self.save_m2m()
        return user


class UserCreateForm(StaffUserForm):
    password_required = True


class UserEditForm(StaffUserForm):
    password_required = False
